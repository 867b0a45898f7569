"""Classification, ordering and formatting of symbols for listing."""

from __future__ import annotations

from typing import Iterable, Optional, Sequence

from .macho import BAD_STRING_INDEX, MachO, Symbol

N_EXT = 0x01
N_TYPE = 0x0E
N_UNDF = 0x0
N_ABS = 0x2
N_INDR = 0xA
N_SECT = 0xE
N_WEAK_REF = 0x40
N_GSYM = 0x20

_SECTION_LETTERS = "tdb"


def symbol_type(symbol: Symbol, section_indices: Sequence[int]) -> Optional[str]:
    """Return the one-letter type of ``symbol``, or None when it has none."""
    kind = symbol.n_type & N_TYPE
    letter: Optional[str] = None
    if kind == N_SECT:
        letter = next(
            (code for code, number in zip(_SECTION_LETTERS, section_indices) if symbol.n_sect == number),
            "s",
        )
    elif kind == N_UNDF:
        if symbol.n_type == 0:
            letter = "?"
        elif symbol.value == 0:
            letter = "U"
        else:
            letter = "c"
    if symbol.n_desc & N_WEAK_REF and letter != "U":
        return "w"
    if kind == N_ABS:
        return "A"
    if kind == N_INDR:
        return "I"
    if symbol.n_type & N_EXT and letter is not None:
        return letter.upper()
    return letter


def sort_symbols(symbols: Iterable[Symbol], section_indices: Sequence[int]) -> list[Symbol]:
    """Order symbols by name, or by address when any name is unreadable.

    Among equal names an indirect symbol gives way to the next one.
    """
    remaining = list(symbols)
    if any(symbol.name == BAD_STRING_INDEX for symbol in remaining):
        return sorted(remaining, key=lambda symbol: symbol.value)
    pending = [(symbol, symbol_type(symbol, section_indices) == "I") for symbol in remaining]
    ordered = []
    while pending:
        best = 0
        for position, (symbol, _) in enumerate(pending[1:], start=1):
            current, current_indirect = pending[best]
            if symbol.name < current.name or (symbol.name == current.name and current_indirect):
                best = position
        ordered.append(pending.pop(best)[0])
    return ordered


def format_symbol(symbol: Symbol, type_char: str, is_64: bool) -> str:
    """Render one listing line, without a trailing newline."""
    width = 16 if is_64 else 8
    if type_char == "I":
        return f"{type_char:>{width + 2}} {symbol.name} (indirect for {symbol.name})"
    if symbol.value == 0 and type_char not in ("T", "t", "A"):
        return f"{type_char:>{width + 2}} {symbol.name}"
    return f"{symbol.value:0{width}x} {type_char} {symbol.name}"


def list_symbols(macho: MachO) -> list[str]:
    """Return the listing lines for every printable symbol of ``macho``."""
    indices = macho.section_indices
    lines = []
    for symbol in sort_symbols(macho.symbols, indices):
        type_char = symbol_type(symbol, indices)
        if type_char is not None and symbol.name and symbol.n_type != N_GSYM:
            lines.append(format_symbol(symbol, type_char, macho.is_64))
    return lines