"""Invoice reception with AI extraction and automatic voucher creation."""
__version__ = "0.1.0"
