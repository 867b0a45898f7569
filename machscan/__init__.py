"""Symbol listing and __text section dumps for Mach-O, fat and ar archive files."""

__version__ = "0.1.0"
__all__ = ["binary", "macho", "symbols", "hexdump", "nm", "otool"]