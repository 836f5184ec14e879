from typing import Iterable


class RequisitionError(Exception):
    """Base class for refused or failed requisition operations."""


class PreconditionFailed(RequisitionError):
    """The mutation is forbidden in the record's current state."""


class NothingToUpdate(RequisitionError):
    """A batch action matched no orders; nothing was written."""


class NothingToExport(RequisitionError):
    pass


class InvalidSchedule(RequisitionError, ValueError):
    pass


class BatchWriteError(RequisitionError):
    """A batch write failed and was rolled back as a whole."""

    def __init__(self, order_ids: Iterable[str], cause: str = ""):
        self.order_ids = list(order_ids)
        msg = f"Batch update of {len(self.order_ids)} order(s) failed and was rolled back"
        if cause:
            msg += f": {cause}"
        super().__init__(msg)
