# machscan

Inspect Mach-O object files from Python or the command line. machscan reads
thin 32- and 64-bit Mach-O images in either byte order, fat (universal)
binaries with 32- or 64-bit architecture tables, and `ar` static archives
whose members are Mach-O images.

## Installation

```
pip install .
```

## Commands

### machscan-nm

```
machscan-nm [-rUungpj] [file ...]
```

This command lists the symbols of each file. If no file is given, `a.out`
is used. Each line holds the address, a type letter and the name:

- `T`/`t` is `__text`, `D`/`d` is `__data`, `B`/`b` is `__bss`, and `S`/`s`
  is any other section. Upper case means the symbol is external.
- `U` is undefined, `C`/`c` is common, `A` is absolute, `I` is indirect,
  `w` is a weak reference, and `?` is unknown.

Symbols are sorted by name. If any symbol's name cannot be read, the whole
table is sorted by address instead. Undefined symbols, and others whose value
is zero, show blank space where the address would be. This does not apply to
`T`, `t` or `A`.

When more than one file is named, each file's block starts with a blank line,
and a thin image also gets a `file:` heading. A fat binary prints one block
for each architecture, headed `file (for architecture i386):` or `ppc`.
Redundant entries are skipped: a 32-bit entry is skipped when the same CPU
family also has a 64-bit entry, and any entry is skipped when an earlier
entry has the same CPU type. An archive prints one `archive(member):` block
for each member.

Errors are written to standard output as `ft_nm: file: message`. These
include a missing file, a denied permission, a directory, an unrecognised
format and a truncated section. An unknown flag letter is reported on
standard error, and the command exits with status 1.

### machscan-otool

```
machscan-otool file ...
```

This command dumps the `__text` section of each file as hexadecimal. Each row
shows 16 bytes, starting with the row's address. Bytes are separated one by
one. For byte-swapped images they are grouped four at a time. Fat binaries
are headed `file (architecture i386):` or `ppc`. Archives start with
`Archive : file`, followed by one `archive(member):` block per member. If no
file is given, an error message is printed.

## Library use

```python
from machscan.binary import identify_magic
from machscan.macho import parse_macho
from machscan.symbols import list_symbols

with open("a.out", "rb") as handle:
    data = handle.read()

magic = identify_magic(data)
macho = parse_macho(data, 0, magic.is_64, magic.swapped)
for line in list_symbols(macho):
    print(line)
```

- `machscan.binary`
  - `identify_magic` returns a `Magic`, which has the properties `is_64`,
    `is_fat` and `swapped`.
  - `read_fat_arches` returns the `FatArch` entries of a fat header.
  - `is_redundant_arch` applies the skipping rule described above.
  - `swap_u16`, `swap_u32` and `swap_u64` reverse byte order.
- `machscan.macho`
  - `parse_macho` returns a `MachO` that holds its `Section` and `Symbol`
    entries.
  - `MachO.section_named` looks up a section by name.
- `machscan.symbols`
  - `symbol_type` gives the type letter of a symbol.
  - `sort_symbols` puts symbols in listing order.
  - `format_symbol` renders one listing line.
  - `list_symbols` returns every listing line of an image.
- `machscan.hexdump`
  - `format_section` renders a section's bytes in the `machscan-otool`
    layout.
- `machscan.nm`
  - `nm_bytes` and `nm_file` return the full text that `machscan-nm` prints
    for one file.
  - `parse_options` reads the command-line flags into an `Options`.
- `machscan.otool`
  - `otool_bytes` and `otool_file` return the full text that
    `machscan-otool` prints for one file.

Malformed input raises `MachOError`. A section that runs past the end of the
file raises `TruncatedSectionError`, which is a subclass of `MachOError`.

## Limitations

- The `-r`, `-u`, `-U`, `-n`, `-g`, `-p` and `-j` flags of `machscan-nm` are
  accepted and recorded in `Options`, but they do not change the listing.
- Architecture headings are only produced for i386 and ppc. Other CPU types in
  a fat binary are listed without a heading.
- `machscan-otool` dumps only the `__text` section. It does not disassemble
  and has no options.

## Running the tests

```
pip install .[test]
pytest
```