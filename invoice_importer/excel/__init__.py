from .reader import SpreadsheetRowSource, is_supported_extension

__all__ = ["SpreadsheetRowSource", "is_supported_extension"]
