"""
Domain errors raised by the voucher reception services.

Routers translate these into HTTP responses. The background extraction
task catches everything and records it on the extraction row instead.
"""


class VoucherReceptionError(Exception):
    """Base class for all voucher reception errors"""


class ExtractionNotFoundError(VoucherReceptionError):
    pass


class InvalidExtractionStateError(VoucherReceptionError):
    pass


class ExtractionDecodeError(VoucherReceptionError):
    """Stored extraction JSON could not be decoded into invoice data"""


class LedgerError(VoucherReceptionError):
    """The ledger rejected a voucher"""


class UnbalancedVoucherError(LedgerError):
    pass


class UnknownAccountError(LedgerError):
    pass


class QueueFullError(VoucherReceptionError):
    """The extraction worker pool has no free capacity"""
