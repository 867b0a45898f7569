import struct

import pytest

from machscan.binary import MachOError, TruncatedSectionError
from machscan.macho import BAD_STRING_INDEX, MachO, Section, parse_macho

PAD = 64


def build(*, is_64=True, big=False, sections=(), symbols=()):
    order = ">" if big else "<"
    if is_64:
        header_fmt, seg_fmt, sect_fmt, nlist_fmt = "IiiIIIII", "II16sQQQQiiII", "16s16sQQIIIIIIII", "IBBHQ"
        magic, seg_cmd, sect_zeros = 0xFEEDFACF, 0x19, 7
    else:
        header_fmt, seg_fmt, sect_fmt, nlist_fmt = "IiiIIII", "II16sIIIIiiII", "16s16sIIIIIIIII", "IBBHI"
        magic, seg_cmd, sect_zeros = 0xFEEDFACE, 0x1, 6
    header_size = struct.calcsize(order + header_fmt)
    seg_size = struct.calcsize(order + seg_fmt) + len(sections) * struct.calcsize(order + sect_fmt)
    strtab = b"\0"
    entries = []
    for name, n_type, n_sect, n_desc, value in symbols:
        if name is None:
            strx = 0xFFFFFF
        else:
            strx = len(strtab)
            strtab += name.encode() + b"\0"
        entries.append(struct.pack(order + nlist_fmt, strx, n_type, n_sect, n_desc, value))
    symoff = header_size + seg_size + 24
    stroff = symoff + len(b"".join(entries))
    header_fields = [magic, 7, 3, 1, 2, seg_size + 24, 0] + ([0] if is_64 else [])
    out = struct.pack(order + header_fmt, *header_fields)
    out += struct.pack(order + seg_fmt, seg_cmd, seg_size, b"__TEXT", 0, 0, 0, 0, 7, 5, len(sections), 0)
    for sectname, segname, addr, size, offset in sections:
        out += struct.pack(
            order + sect_fmt, sectname.encode(), segname.encode(), addr, size, offset, *([0] * sect_zeros)
        )
    out += struct.pack(order + "IIIIII", 2, 24, symoff, len(symbols), stroff, len(strtab))
    out += b"".join(entries) + strtab + b"\0" * PAD
    return out


SECTIONS = [
    ("__text", "__TEXT", 0x1000, 4, 0),
    ("__data", "__DATA", 0x2000, 4, 0),
    ("__bss", "__DATA", 0x3000, 4, 0),
]
SYMBOLS = [
    ("_main", 0x0F, 1, 0, 0x1000),
    ("_printf", 0x01, 0, 0, 0),
    ("_counter", 0x0E, 3, 0, 0x3000),
]


def test_parse_64_sections_and_symbols():
    macho = parse_macho(build(sections=SECTIONS, symbols=SYMBOLS), 0, True, False)
    assert [s.sectname for s in macho.sections] == ["__text", "__data", "__bss"]
    assert [s.segname for s in macho.sections] == ["__TEXT", "__DATA", "__DATA"]
    assert [s.addr for s in macho.sections] == [0x1000, 0x2000, 0x3000]
    assert [(s.name, s.n_type, s.n_sect, s.value) for s in macho.symbols] == [
        (name, n_type, n_sect, value) for name, n_type, n_sect, _, value in SYMBOLS
    ]
    assert macho.is_64


def test_section_indices_follow_section_numbers():
    macho = parse_macho(build(sections=SECTIONS, symbols=SYMBOLS), 0, True, False)
    assert macho.section_indices == (1, 2, 3)
    assert [s.number for s in macho.sections] == [1, 2, 3]


def test_missing_sections_have_zero_index():
    macho = parse_macho(build(sections=SECTIONS[:1]), 0, True, False)
    assert macho.section_indices == (1, 0, 0)


def test_section_named():
    macho = parse_macho(build(sections=SECTIONS), 0, True, False)
    text = macho.section_named("__text")
    assert text is not None and text.addr == 0x1000
    assert macho.section_named("__cstring") is None


@pytest.mark.parametrize("is_64", [True, False])
def test_big_endian_decodes_like_little_endian(is_64):
    little = parse_macho(build(is_64=is_64, sections=SECTIONS, symbols=SYMBOLS), 0, is_64, False)
    big = parse_macho(build(is_64=is_64, big=True, sections=SECTIONS, symbols=SYMBOLS), 0, is_64, True)
    assert big.sections == little.sections
    assert big.symbols == little.symbols


def test_parse_at_nonzero_offset():
    image = build(sections=SECTIONS, symbols=SYMBOLS)
    plain = parse_macho(image, 0, True, False)
    shifted = parse_macho(b"\0" * 16 + image, 16, True, False)
    assert [s.name for s in shifted.symbols] == [s.name for s in plain.symbols]
    assert shifted.offset == 16


def test_bad_string_index():
    macho = parse_macho(build(symbols=[(None, 0x0F, 1, 0, 0x10)]), 0, True, False)
    assert macho.symbols[0].name == BAD_STRING_INDEX


def test_truncated_section_raises():
    sections = [("__text", "__TEXT", 0, 4, 0), ("__data", "__DATA", 0, 10**6, 0)]
    with pytest.raises(TruncatedSectionError) as info:
        parse_macho(build(sections=sections), 0, True, False)
    assert info.value.section == 1


def test_oversized_bss_allowed_in_64_bit():
    sections = [("__bss", "__DATA", 0x3000, 10**6, 0)]
    macho = parse_macho(build(sections=sections), 0, True, False)
    assert macho.section_named("__bss").size == 10**6


def test_oversized_bss_rejected_in_32_bit():
    sections = [("__bss", "__DATA", 0x3000, 10**6, 0)]
    with pytest.raises(TruncatedSectionError):
        parse_macho(build(is_64=False, sections=sections), 0, False, False)


def test_truncated_header_raises():
    with pytest.raises(MachOError):
        parse_macho(b"\xcf\xfa\xed\xfe", 0, True, False)


def test_load_commands_past_end_raise():
    image = build(sections=SECTIONS)
    with pytest.raises(MachOError):
        parse_macho(image[:40], 0, True, False)


def test_symbol_table_past_end_raises():
    image = build(symbols=SYMBOLS)
    symoff = 32 + 72 + 24
    with pytest.raises(MachOError):
        parse_macho(image[: symoff + 1], 0, True, False)


def test_manual_macho_section_named_picks_last():
    first = Section("__text", "__TEXT", 1, 1, 0, 0, 1)
    second = Section("__text", "__OTHER", 2, 1, 0, 0, 2)
    macho = MachO(is_64=False, sections=[first, second])
    assert macho.section_named("__text") == second
    assert macho.section_indices[0] == 2