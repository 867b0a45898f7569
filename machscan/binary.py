"""Low-level reading of Mach-O and fat binary headers."""

from __future__ import annotations

import struct
from dataclasses import dataclass
from enum import Enum

CPU_ARCH_ABI64 = 0x01000000
CPU_FAMILY_MASK = 0x000000FF
CPU_TYPE_I386 = 7
CPU_TYPE_POWERPC = 18

FAT_HEADER_SIZE = 8
_FAT_ARCH_32 = "iiIII"
_FAT_ARCH_64 = "iiQQII"


class MachOError(Exception):
    """Raised when data is not a well-formed object file."""

    def __init__(self, message: str = "The file was not recognized as a valid object file.") -> None:
        super().__init__(message)


class TruncatedSectionError(MachOError):
    """Raised when a section extends past the end of the file."""

    def __init__(self, section: int) -> None:
        self.section = section
        super().__init__(
            "truncated or malformed object (offset field plus size field of "
            f"section {section} in LC_SEGMENT command 1 extends past the end of the file)"
        )


class Magic(Enum):
    """Known magic numbers, as read in little-endian order from the file start."""

    MH_MAGIC = 0xFEEDFACE
    MH_CIGAM = 0xCEFAEDFE
    MH_MAGIC_64 = 0xFEEDFACF
    MH_CIGAM_64 = 0xCFFAEDFE
    FAT_MAGIC = 0xCAFEBABE
    FAT_CIGAM = 0xBEBAFECA
    FAT_MAGIC_64 = 0xCAFEBABF
    FAT_CIGAM_64 = 0xBFBAFECA

    @property
    def is_64(self) -> bool:
        return self in (Magic.MH_MAGIC_64, Magic.MH_CIGAM_64, Magic.FAT_MAGIC_64, Magic.FAT_CIGAM_64)

    @property
    def is_fat(self) -> bool:
        return self.name.startswith("FAT_")

    @property
    def swapped(self) -> bool:
        """True when the file's byte order is the reverse of little-endian."""
        return "CIGAM" in self.name

    @property
    def byte_order(self) -> str:
        """The struct-module prefix for fields of a file with this magic."""
        return ">" if self.swapped else "<"


@dataclass(frozen=True)
class FatArch:
    """One architecture entry of a fat (universal) binary."""

    cputype: int
    cpusubtype: int
    offset: int
    size: int
    align: int

    @property
    def family(self) -> int:
        return self.cputype & CPU_FAMILY_MASK

    @property
    def is_abi64(self) -> bool:
        return bool(self.cputype & CPU_ARCH_ABI64)


def swap_u16(value: int) -> int:
    """Reverse the byte order of a 16-bit unsigned integer."""
    return int.from_bytes((value & 0xFFFF).to_bytes(2, "little"), "big")


def swap_u32(value: int) -> int:
    """Reverse the byte order of a 32-bit unsigned integer."""
    return int.from_bytes((value & 0xFFFFFFFF).to_bytes(4, "little"), "big")


def swap_u64(value: int) -> int:
    """Reverse the byte order of a 64-bit unsigned integer."""
    return int.from_bytes((value & 0xFFFFFFFFFFFFFFFF).to_bytes(8, "little"), "big")


def identify_magic(data: bytes, offset: int = 0) -> Magic:
    """Return the magic number found at ``offset``, or raise MachOError."""
    if offset < 0 or offset + 4 > len(data):
        raise MachOError()
    (value,) = struct.unpack_from("<I", data, offset)
    try:
        return Magic(value)
    except ValueError:
        raise MachOError() from None


def read_fat_arches(data: bytes, is_64: bool, swapped: bool) -> list[FatArch]:
    """Read every architecture entry of the fat header at the start of ``data``."""
    order = ">" if swapped else "<"
    if len(data) < FAT_HEADER_SIZE:
        raise MachOError()
    (count,) = struct.unpack_from(order + "I", data, 4)
    layout = struct.Struct(order + (_FAT_ARCH_64 if is_64 else _FAT_ARCH_32))
    end = FAT_HEADER_SIZE + count * layout.size
    if end > len(data):
        raise MachOError()
    arches = []
    for fields in layout.iter_unpack(data[FAT_HEADER_SIZE:end]):
        cputype, cpusubtype, offset, size, align = fields[:5]
        arches.append(FatArch(cputype, cpusubtype, offset, size, align))
    return arches


def is_redundant_arch(arches: list[FatArch], index: int) -> bool:
    """Tell whether the entry at ``index`` should be skipped.

    An entry is skipped when a 64-bit variant of its CPU family is present
    while it is not itself 64-bit, or when an earlier entry has the same CPU type.
    """
    candidate = arches[index]
    for position, other in enumerate(arches):
        if (
            candidate.family == other.family
            and not candidate.is_abi64
            and other.is_abi64
        ):
            return True
        if position < index and candidate.cputype == other.cputype:
            return True
    return False