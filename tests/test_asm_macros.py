import pytest

from qformvdf.asm_macros import (
    COMMENT_ASM_LINE_SIZE,
    REG_RAX,
    REG_RBX,
    REG_RCX,
    SPILL_BYTES,
    ExpandMacros,
    Recording,
    RegAlloc,
    RegScalar,
    RegSpill,
    RegVector,
    format_str,
    to_hex,
)


def test_to_hex_round_trips_through_int():
    for value in (0, 1, 255, -255, 2**63, -(2**64 - 1)):
        text = to_hex(value)
        sign = -1 if text.startswith("-") else 1
        assert sign * int(text.lstrip("-"), 16) == value


def test_to_hex_rejects_large_values():
    with pytest.raises(ValueError):
        to_hex(2**64)


def test_format_str_substitutes_in_order():
    assert format_str("#:#", "a", 7) == "a:7"
    assert format_str("[RSP+#]", "-0x400") == "[RSP+-0x400]"


def test_format_str_mismatch_raises():
    with pytest.raises(ValueError):
        format_str("# #", 1)


def test_scalar_names():
    assert REG_RAX.name() == "RAX"
    assert REG_RAX.name(32) == "EAX"
    assert REG_RCX.name(8) == "CL"
    assert RegScalar(20).name(16).startswith("PSEUDO_20")
    with pytest.raises(ValueError):
        RegScalar().name()
    with pytest.raises(ValueError):
        REG_RAX.name(12)


def test_vector_names():
    assert RegVector(3, 128).name(128) == "XMM3"
    assert RegVector(3, 128).name(512).startswith("PSEUDO_")
    assert not RegVector(3, 128, True).name(256).startswith("PSEUDO_")
    assert RegVector(40, 128, True).name(128).startswith("PSEUDO_")


def test_spill_name_and_offset():
    spill = RegSpill(16, 8, 8)
    assert spill.rsp_offset() == 16 - SPILL_BYTES
    assert spill.name() == f"[RSP+{to_hex(16 - SPILL_BYTES)}]"
    shifted = spill + 4
    assert (shifted.value, shifted.size, shifted.alignment) == (20, 4, 1)
    with pytest.raises(ValueError):
        RegSpill(4, 8, 8).name()
    with pytest.raises(ValueError):
        RegSpill(SPILL_BYTES - 4, 8, 4).name()


def test_expand_replaces_bound_names():
    m = ExpandMacros()
    with m.scope("f"):
        m.bind_value("x", "RAX")
        m.bind_value("y_1", "RBX")
        assert m.expand("MOV `x, `y_1") == ("MOV RAX, RBX", ["x", "y_1"])
        assert m.expand("ADD `x`x") == ("ADD RAXRAX", ["x", "x"])
        with pytest.raises(KeyError):
            m.expand("MOV `missing, 1")


def test_private_outer_scope_is_hidden():
    m = ExpandMacros()
    with m.scope("outer"):
        m.bind_value("a", "RAX")
        with m.scope("inner"):
            with pytest.raises(KeyError):
                m.lookup_value("a")
            assert m.describe_scope() == "outer/inner"
    assert m.scopes == []


def test_public_outer_scope_is_visible():
    m = ExpandMacros()
    with m.scope("outer", True):
        m.bind_value("a", "RAX")
        with m.scope("inner"):
            assert m.lookup_value("a") == "RAX"


def test_duplicate_binding_raises():
    m = ExpandMacros()
    with m.scope("f"):
        m.bind_value("a", "RAX")
        with pytest.raises(ValueError):
            m.bind_value("a", "RBX")


def test_describe_name():
    m = ExpandMacros()
    with m.scope("outer", True):
        m.bind_value("x", "RAX")
        assert m.describe_name("x") == "x=RAX"
        with m.scope("inner"):
            m.bind_value("y", "RAX")
            text = m.describe_name("y")
            assert text.startswith("y=RAX(")
            assert "x" in text
        assert m.describe_name("x") == "x=RAX"


def test_bind_register_and_arrays():
    m = ExpandMacros()
    with m.scope("f"):
        m.bind([REG_RAX, REG_RBX], "v")
        assert m.lookup_value("v_0") == REG_RAX.name()
        assert m.lookup_value("v_1_32") == REG_RBX.name(32)
        spill = RegSpill(8, 8, 8)
        m.bind(spill, "s")
        assert m.lookup_value("s") == spill.name()
        assert m.lookup_value("s_rsp_offset") == to_hex(spill.rsp_offset())
        with pytest.raises(TypeError):
            m.bind("text", "t")


def test_labels_increment():
    m = ExpandMacros(asm_prefix="p_")
    first = m.alloc_label()
    second = m.alloc_label()
    assert first != second
    assert first.startswith("_p_label_")
    assert m.alloc_error_label().startswith("p_label_error_")


def test_recording_captures_lines():
    m = ExpandMacros()
    rec = Recording()
    with m.scope("f"):
        m.append("NOP", 1)
        m.begin_recording(rec)
        m.append("INC RAX", 2)
        m.append("DEC RAX", 3)
        with pytest.raises(RuntimeError):
            m.alloc_label()
        lines = m.end_recording(rec)
    assert [line[1] for line in lines] == ["INC RAX", "DEC RAX"]
    m.append_recording(lines)
    assert len(m.res_text) == 5
    with pytest.raises(RuntimeError):
        m.end_recording(rec)


def test_append_records_tag_and_comment():
    m = ExpandMacros()
    with m.scope("body"), m.tag("hot"):
        m.bind_value("r", "RCX")
        m.append("SHR `r, 1", 42)
    line = m.res_text[0]
    assert line[0] == "hot"
    assert line[1] == "SHR RCX, 1"
    assert "body:42" in line[2]
    assert line[3] == "SHR `r, 1"
    with pytest.raises(ValueError):
        with m.scope("x"):
            m.append("")


def test_format_res_text_aligns_comments():
    m = ExpandMacros(asm_prefix="q_")
    with m.scope("f"):
        m.append("MOV RAX, 1", 1)
        m.append("RET", 2)
    rendered = m.format_res_text()
    lines = rendered.splitlines()
    assert len(lines) == 2
    for number, line in enumerate(lines, start=1):
        assert line.startswith(f"q_Xx_{number}: ")
        assert line.index(" # ") >= COMMENT_ASM_LINE_SIZE
    assert lines[0].endswith("MOV RAX, 1")


def test_alloc_scalar_order_and_fixed():
    regs = RegAlloc()
    assert regs.get_scalar() == REG_RBX
    assert regs.get_scalar(REG_RAX) == REG_RAX
    with pytest.raises(RuntimeError):
        regs.get_scalar(REG_RAX)
    regs.add(REG_RAX)
    assert regs.get_scalar(REG_RAX) == REG_RAX
    with pytest.raises(ValueError):
        regs.add(RegScalar(0))


def test_alloc_scalars_never_repeat_and_exhaust():
    regs = RegAlloc()
    seen = set()
    with pytest.raises(RuntimeError):
        while True:
            reg = regs.get_scalar()
            assert reg.value not in seen
            assert reg.value != 0
            seen.add(reg.value)
    assert len(seen) == 31


def test_copy_is_independent():
    regs = RegAlloc()
    clone = regs.copy()
    taken = clone.get_scalar()
    assert regs.get_scalar() == taken


def test_spill_allocation_respects_alignment():
    regs = RegAlloc()
    a = regs.get_spill(8)
    b = regs.get_spill(16)
    c = regs.get_spill(1, 1)
    assert a.value % 8 == 0
    assert b.value % 16 == 0
    spans = [range(s.value, s.value + s.size) for s in (a, b, c)]
    covered = [x for span in spans for x in span]
    assert len(covered) == len(set(covered))
    with pytest.raises(ValueError):
        regs.get_spill(8, 3)
    with pytest.raises(RuntimeError):
        regs.get_spill(SPILL_BYTES, 64)


def test_vectors_and_bind_helpers():
    regs = RegAlloc()
    m = ExpandMacros()
    with m.scope("f"):
        v = regs.bind_vector(m, "vec")
        w = regs.bind_vector(m, "vec2", 256)
        s = regs.bind_scalar(m, "tmp", REG_RCX)
        sp = regs.bind_spill(m, "slot")
        assert v.value != w.value
        assert m.lookup_value("vec_128") == v.name(128)
        assert m.lookup_value("vec2") == w.name(256)
        assert m.lookup_value("tmp") == s.name()
        assert m.lookup_value("slot") == sp.name()
        assert m.expand("MOV `tmp, `slot")[0] == f"MOV {s.name()}, {sp.name()}"