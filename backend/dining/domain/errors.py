class ReservationError(Exception):
    """Base class for rejections raised by the reservation use cases."""


class NotFoundError(ReservationError):
    pass


class BusinessRuleViolation(ReservationError):
    pass


class SlotConflictError(ReservationError):
    """The room/date/slot already holds an active reservation."""


class OptimisticConflictError(ReservationError):
    """The reservation changed between read and conditional update."""
