"""Parsing of single-architecture Mach-O object files."""

from __future__ import annotations

import struct
from dataclasses import dataclass, field
from typing import Optional

from .binary import MachOError, TruncatedSectionError

LC_SEGMENT = 0x1
LC_SYMTAB = 0x2
LC_SEGMENT_64 = 0x19

SECT_TEXT = "__text"
SECT_DATA = "__data"
SECT_BSS = "__bss"

BAD_STRING_INDEX = "bad string index"

_LOAD_COMMAND = "II"
_SYMTAB_COMMAND = "IIIIII"


@dataclass(frozen=True)
class _Layout:
    header_size: int
    segment: str
    section: str
    nlist: str
    segment_command: int


_LAYOUT_32 = _Layout(28, "II16sIIIIiiII", "16s16sIIIIIIIII", "IBBHI", LC_SEGMENT)
_LAYOUT_64 = _Layout(32, "II16sQQQQiiII", "16s16sQQIIIIIIII", "IBBHQ", LC_SEGMENT_64)


@dataclass(frozen=True)
class Section:
    """A section header, numbered from 1 across all segments."""

    sectname: str
    segname: str
    addr: int
    size: int
    offset: int
    align: int
    number: int


@dataclass(frozen=True)
class Symbol:
    """One symbol table entry with its resolved name."""

    name: str
    n_type: int
    n_sect: int
    n_desc: int
    value: int
    string_offset: int = 0


@dataclass
class MachO:
    """The sections and symbols of one Mach-O image."""

    is_64: bool
    offset: int = 0
    sections: list[Section] = field(default_factory=list)
    symbols: list[Symbol] = field(default_factory=list)

    def section_named(self, name: str) -> Optional[Section]:
        """Return the last section called ``name``, or None."""
        found = None
        for section in self.sections:
            if section.sectname == name:
                found = section
        return found

    @property
    def section_indices(self) -> tuple[int, int, int]:
        """Section numbers of __text, __data and __bss, 0 where absent."""
        numbers = []
        for name in (SECT_TEXT, SECT_DATA, SECT_BSS):
            section = self.section_named(name)
            numbers.append(section.number if section is not None else 0)
        return (numbers[0], numbers[1], numbers[2])


def _cstring(raw: bytes) -> str:
    return raw.split(b"\0", 1)[0].decode("utf-8", "replace")


class _Reader:
    def __init__(self, data: bytes, is_64: bool, swapped: bool) -> None:
        self.data = data
        self.is_64 = is_64
        self.layout = _LAYOUT_64 if is_64 else _LAYOUT_32
        self.order = ">" if swapped else "<"

    def size(self, fmt: str) -> int:
        return struct.calcsize(self.order + fmt)

    def unpack(self, fmt: str, position: int) -> tuple:
        layout = struct.Struct(self.order + fmt)
        if position < 0 or position + layout.size > len(self.data):
            raise MachOError()
        return layout.unpack_from(self.data, position)

    def name_at(self, position: int) -> str:
        end = self.data.find(b"\0", position)
        if end == -1:
            end = len(self.data)
        return self.data[position:end].decode("utf-8", "replace")


def _parse_segment(reader: _Reader, position: int, macho: MachO) -> None:
    file_size = len(reader.data)
    fields = reader.unpack(reader.layout.segment, position)
    cmdsize, nsects = fields[1], fields[-2]
    if position + cmdsize > file_size:
        raise MachOError()
    position += reader.size(reader.layout.segment)
    if position > file_size:
        raise MachOError()
    section_size = reader.size(reader.layout.section)
    for index in range(nsects):
        sectname, segname, addr, size, offset, align = reader.unpack(
            reader.layout.section, position
        )[:6]
        name = _cstring(sectname)
        if position + size > file_size and not (reader.is_64 and name == SECT_BSS):
            raise TruncatedSectionError(index)
        macho.sections.append(
            Section(name, _cstring(segname), addr, size, offset, align, len(macho.sections) + 1)
        )
        position += section_size
        if position > file_size:
            raise MachOError()


def _parse_symtab(reader: _Reader, position: int, base: int) -> list[Symbol]:
    _, _, symoff, nsyms, stroff, _ = reader.unpack(_SYMTAB_COMMAND, position)
    entry_size = reader.size(reader.layout.nlist)
    entry = base + symoff
    strings = base + stroff
    symbols = []
    for _ in range(nsyms):
        strx, n_type, n_sect, n_desc, value = reader.unpack(reader.layout.nlist, entry)
        entry += entry_size
        string_offset = strings + strx
        if string_offset < len(reader.data):
            name = reader.name_at(string_offset)
        else:
            name = BAD_STRING_INDEX
        symbols.append(Symbol(name, n_type, n_sect, n_desc, value, string_offset))
    return symbols


def parse_macho(data: bytes, offset: int = 0, is_64: bool = False, swapped: bool = False) -> MachO:
    """Parse the Mach-O image starting at ``offset`` of ``data``.

    Raises MachOError when a structure lies outside the data and
    TruncatedSectionError when a section runs past its end.
    """
    reader = _Reader(data, is_64, swapped)
    if offset < 0 or offset + reader.layout.header_size > len(data):
        raise MachOError()
    (ncmds,) = reader.unpack("I", offset + 16)
    macho = MachO(is_64=is_64, offset=offset)
    position = offset + reader.layout.header_size
    for _ in range(ncmds):
        cmd, cmdsize = reader.unpack(_LOAD_COMMAND, position)
        if cmd == reader.layout.segment_command:
            _parse_segment(reader, position, macho)
        elif cmd == LC_SYMTAB:
            macho.symbols = _parse_symtab(reader, position, offset)
        position += cmdsize
        if position > len(data):
            raise MachOError()
    return macho