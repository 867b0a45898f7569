"""Hexadecimal dump of the __text section of Mach-O, fat and archive files."""

from __future__ import annotations

import errno
import os
import re
import sys
from typing import Optional

from .binary import (
    CPU_TYPE_I386,
    CPU_TYPE_POWERPC,
    Magic,
    MachOError,
    identify_magic,
    is_redundant_arch,
    read_fat_arches,
)
from .hexdump import format_section
from .macho import SECT_TEXT, Section, parse_macho
from .nm import AR_HDR_SIZE, ARMAG, SARMAG

PROG = "ft_otool"

_AR_NAME = slice(3, 16)
_AR_SIZE = slice(48, 58)
_ARCH_NAMES = {CPU_TYPE_I386: "i386", CPU_TYPE_POWERPC: "ppc"}
_ATOI = re.compile(r"[+-]?\d+")
_EMPTY_SECTION = Section("", "", 0, 0, 0, 0, 0)


def arch_title(name: str, cputype: int) -> Optional[str]:
    """Return the heading printed before one architecture of a fat file."""
    arch = _ARCH_NAMES.get(cputype)
    if arch is None:
        return None
    return f"{name} (architecture {arch}):\n"


def _atoi(raw: bytes) -> int:
    text = raw.decode("ascii", "replace").lstrip(" \t\n\v\f\r")
    match = _ATOI.match(text)
    return int(match.group()) if match else 0


def _cstring_at(data: bytes, offset: int) -> str:
    end = data.find(b"\0", offset)
    if end == -1:
        end = len(data)
    return data[offset:end].decode("utf-8", "replace")


def _error_line(name: str, error: Exception) -> str:
    return f"{PROG}: {name}: {error}\n"


def _dump_image(
    data: bytes,
    name: str,
    offset: int,
    magic: Magic,
    title: Optional[str],
    show_name: bool,
) -> str:
    if magic.is_fat:
        raise MachOError()
    macho = parse_macho(data, offset, magic.is_64, magic.swapped)
    if any(symbol.string_offset > len(data) for symbol in macho.symbols):
        raise MachOError()
    section = macho.section_named(SECT_TEXT) or _EMPTY_SECTION
    if title is not None:
        heading = title
    elif show_name:
        heading = f"{name}:\n"
    else:
        heading = ""
    return heading + format_section(data, section, offset, magic.is_64, magic.swapped)


def _dump_fat(data: bytes, name: str, magic: Magic) -> str:
    arches = read_fat_arches(data, magic.is_64, magic.swapped)
    chunks = []
    printed = 0
    for index, arch in enumerate(arches):
        if is_redundant_arch(arches, index):
            continue
        title = None
        if index + 1 < len(arches) or printed:
            title = arch_title(name, arch.cputype)
        inner = identify_magic(data, arch.offset)
        chunks.append(_dump_image(data, name, arch.offset, inner, title, True))
        printed += 1
    return "".join(chunks)


def _dump_archive(data: bytes, name: str) -> str:
    size = len(data)
    first = data[SARMAG:SARMAG + AR_HDR_SIZE]
    offset = SARMAG + _atoi(first[_AR_SIZE]) + AR_HDR_SIZE
    chunks = [f"Archive : {name}\n"]
    while offset < size:
        header = data[offset:offset + AR_HDR_SIZE]
        offset += AR_HDR_SIZE
        if offset > size:
            break
        chunks.append(f"{name}({_cstring_at(data, offset)}):\n")
        name_length = _atoi(header[_AR_NAME])
        member_size = _atoi(header[_AR_SIZE])
        if name_length < 0 or member_size < 0:
            raise MachOError()
        offset += name_length
        if offset > size:
            break
        try:
            magic = identify_magic(data, offset)
            if magic.is_fat:
                chunks.append(_dump_fat(data, name, magic))
            else:
                chunks.append(_dump_image(data, name, offset, magic, None, False))
        except MachOError as error:
            chunks.append(_error_line(name, error))
        offset += member_size - name_length
    return "".join(chunks)


def otool_bytes(data: bytes, name: str) -> str:
    """Return the __text section dump of the file contents ``data``.

    Raises MachOError when the contents are not a recognised object file.
    """
    if data[:SARMAG] == ARMAG:
        return _dump_archive(data, name)
    magic = identify_magic(data)
    if magic.is_fat:
        return _dump_fat(data, name, magic)
    return _dump_image(data, name, 0, magic, None, True)


def otool_file(path: str | os.PathLike) -> str:
    """Read ``path`` and return its __text section dump."""
    path = os.fspath(path)
    if os.path.isdir(path):
        raise IsADirectoryError(errno.EISDIR, "Is a directory", path)
    with open(path, "rb") as handle:
        data = handle.read()
    return otool_bytes(data, path)


def _run(path: str) -> None:
    out = sys.stdout
    try:
        out.write(otool_file(path))
    except IsADirectoryError:
        out.write(f"./{PROG}: {path}: Is a directory\n")
    except FileNotFoundError:
        out.write(f"{PROG}: {path}: No such file or directory.\n")
    except PermissionError:
        out.write(f"{PROG}: {path}: Permission denied.\n")
    except MachOError as error:
        out.write(_error_line(path, error))
    except OSError:
        pass


def main(argv: Optional[list[str]] = None) -> int:
    """Dump the __text section of each file named on the command line."""
    args = sys.argv[1:] if argv is None else list(argv)
    if not args:
        sys.stdout.write(f"Error ./{PROG}: At least one file must be specified\n")
    for path in args:
        _run(path)
    return 0