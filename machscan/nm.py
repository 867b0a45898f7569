"""Symbol listing of Mach-O, fat and archive files."""

from __future__ import annotations

import errno
import os
import re
import sys
from dataclasses import dataclass, field
from typing import Iterable, Optional

from .binary import (
    CPU_TYPE_I386,
    CPU_TYPE_POWERPC,
    Magic,
    MachOError,
    identify_magic,
    is_redundant_arch,
    read_fat_arches,
)
from .macho import parse_macho
from .symbols import list_symbols

PROG = "ft_nm"

ARMAG = b"!<arch>\n"
SARMAG = len(ARMAG)
AR_HDR_SIZE = 60
_AR_NAME = slice(3, 16)
_AR_SIZE = slice(48, 58)

_FLAGS = {
    "r": "reverse",
    "u": "undefined_only",
    "U": "defined_only",
    "n": "numeric",
    "g": "external_only",
    "p": "no_sort",
    "j": "just_names",
}

_ARCH_NAMES = {CPU_TYPE_I386: "i386", CPU_TYPE_POWERPC: "ppc"}

_ATOI = re.compile(r"[+-]?\d+")


@dataclass
class Options:
    """Command-line flags and the files to list."""

    reverse: bool = False
    undefined_only: bool = False
    defined_only: bool = False
    numeric: bool = False
    external_only: bool = False
    no_sort: bool = False
    just_names: bool = False
    files: list[str] = field(default_factory=list)


def parse_options(args: Iterable[str]) -> Options:
    """Read leading flag arguments; everything from the first other argument is a file.

    Raises ValueError on an unknown flag letter.
    """
    options = Options()
    arguments = list(args)
    for position, argument in enumerate(arguments):
        if argument.startswith("-") and len(argument) > 1:
            for flag in argument[1:]:
                attribute = _FLAGS.get(flag)
                if attribute is None:
                    raise ValueError(f"{PROG}: illegal option -- {flag}")
                setattr(options, attribute, True)
        else:
            options.files = arguments[position:]
            break
    return options


def arch_title(name: str, cputype: int) -> Optional[str]:
    """Return the heading printed before one architecture of a fat file."""
    arch = _ARCH_NAMES.get(cputype)
    if arch is None:
        return None
    return f"\n{name} (for architecture {arch}):\n"


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


def _list_image(data: bytes, offset: int, magic: Magic, title: Optional[str]) -> str:
    if magic.is_fat:
        raise MachOError()
    macho = parse_macho(data, offset, magic.is_64, magic.swapped)
    listing = "".join(line + "\n" for line in list_symbols(macho))
    return (title or "") + listing


def _list_fat(data: bytes, name: str, magic: Magic) -> str:
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
        chunks.append(_list_image(data, arch.offset, inner, title))
        printed += 1
    return "".join(chunks)


def _list_archive(data: bytes, name: str) -> str:
    size = len(data)
    first = data[SARMAG:SARMAG + AR_HDR_SIZE]
    offset = SARMAG + _atoi(first[_AR_SIZE]) + AR_HDR_SIZE
    chunks = []
    while offset < size:
        chunks.append("\n")
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
            chunks.append(_list_image(data, offset, identify_magic(data, offset), None))
        except MachOError as error:
            chunks.append(_error_line(name, error))
        offset += member_size - name_length
    return "".join(chunks)


def nm_bytes(data: bytes, name: str, file_count: int = 1) -> str:
    """Return the symbol listing of the file contents ``data``.

    Raises MachOError when the contents are not a recognised object file.
    """
    if data[:SARMAG] == ARMAG:
        return _list_archive(data, name)
    magic = identify_magic(data)
    if magic.is_fat:
        return _list_fat(data, name, magic)
    header = f"{name}:\n" if file_count > 1 else ""
    return header + _list_image(data, 0, magic, None)


def nm_file(path: str | os.PathLike, file_count: int = 1) -> str:
    """Read ``path`` and return its symbol listing."""
    path = os.fspath(path)
    if os.path.isdir(path):
        raise IsADirectoryError(errno.EISDIR, "Is a directory", path)
    with open(path, "rb") as handle:
        data = handle.read()
    return nm_bytes(data, path, file_count)


def _run(path: str, file_count: int) -> None:
    out = sys.stdout
    try:
        out.write(nm_file(path, file_count))
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
    """List the symbols of each file named on the command line."""
    args = sys.argv[1:] if argv is None else list(argv)
    try:
        options = parse_options(args)
    except ValueError as error:
        print(error, file=sys.stderr)
        return 1
    if not options.files:
        _run("a.out", 1)
        return 0
    count = len(options.files)
    for path in options.files:
        if count > 1:
            sys.stdout.write("\n")
        _run(path, count)
    return 0