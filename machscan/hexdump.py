"""Hexadecimal rendering of a section's contents."""

from __future__ import annotations

from .binary import MachOError
from .macho import Section

_BYTES_PER_ROW = 16
_GROUP = 4


def _row(chunk: bytes, swapped: bool) -> str:
    if not swapped:
        return "".join(f"{byte:02x} " for byte in chunk)
    groups = (chunk[start:start + _GROUP] for start in range(0, len(chunk), _GROUP))
    return "".join(group.hex() + (" " if len(group) == _GROUP else "") for group in groups)


def format_section(
    data: bytes,
    section: Section,
    base_offset: int = 0,
    is_64: bool = False,
    swapped: bool = False,
) -> str:
    """Render ``section`` as address-prefixed rows of 16 hexadecimal bytes.

    Bytes are separated one by one, or in groups of four when the image is
    byte-swapped. Raises MachOError when the section lies outside ``data``.
    """
    width = 16 if is_64 else 8
    mask = (1 << (width * 4)) - 1
    start = base_offset + section.offset
    end = start + section.size
    if start < 0 or end > len(data):
        raise MachOError()
    content = data[start:end]
    parts = [f"Contents of ({section.segname},{section.sectname}) section"]
    for row in range(0, len(content), _BYTES_PER_ROW):
        chunk = content[row:row + _BYTES_PER_ROW]
        address = (section.addr + row) & mask
        parts.append(f"\n{address:0{width}x}\t{_row(chunk, swapped)}")
    parts.append("\n")
    return "".join(parts)