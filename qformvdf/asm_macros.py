"""Macro expansion, register naming and register allocation for generated assembly."""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field

SPILL_BYTES = 1024
COMMENT_ASM_LINE_SIZE = 40
NUM_PSEUDO_REGISTERS = 32

SCALAR_REGISTER_NAMES_64 = (
    "RSP", "RAX", "RDX", "RCX", "RBX", "RBP", "RSI", "RDI",
    "R8", "R9", "R10", "R11", "R12", "R13", "R14", "R15",
)
SCALAR_REGISTER_NAMES_32 = (
    "ESP", "EAX", "EDX", "ECX", "EBX", "EBP", "ESI", "EDI",
    "R8D", "R9D", "R10D", "R11D", "R12D", "R13D", "R14D", "R15D",
)
SCALAR_REGISTER_NAMES_16 = (
    "SP", "AX", "DX", "CX", "BX", "BP", "SI", "DI",
    "R8W", "R9W", "R10W", "R11W", "R12W", "R13W", "R14W", "R15W",
)
SCALAR_REGISTER_NAMES_8 = (
    "SPL", "AL", "DL", "CL", "BL", "BPL", "SIL", "DIL",
    "R8B", "R9B", "R10B", "R11B", "R12B", "R13B", "R14B", "R15B",
)

_SCALAR_NAMES_BY_BITS = {
    64: SCALAR_REGISTER_NAMES_64,
    32: SCALAR_REGISTER_NAMES_32,
    16: SCALAR_REGISTER_NAMES_16,
    8: SCALAR_REGISTER_NAMES_8,
}
_VECTOR_PREFIX_BY_BITS = {512: "Z", 256: "Y", 128: "X"}
_VALID_ALIGNMENTS = (1, 2, 4, 8, 16, 32, 64)


def to_hex(value: int) -> str:
    """Format as ``0x..`` or ``-0x..``; the magnitude must fit in 64 bits."""
    magnitude = abs(value)
    if magnitude >> 64:
        raise ValueError(f"value does not fit in 64 bits: {value}")
    sign = "-" if value < 0 else ""
    return f"{sign}0x{magnitude:x}"


def format_str(template: str, *args) -> str:
    """Replace each ``#`` in ``template`` with the next argument, in order."""
    pieces = template.split("#")
    if len(pieces) - 1 != len(args):
        raise ValueError(
            f"template has {len(pieces) - 1} placeholders but {len(args)} arguments were given"
        )
    out = [pieces[0]]
    for arg, piece in zip(args, pieces[1:]):
        out.append(str(arg))
        out.append(piece)
    return "".join(out)


def _is_name_char(c: str) -> bool:
    return ("0" <= c <= "9") or ("A" <= c <= "Z") or ("a" <= c <= "z") or c == "_"


@dataclass
class Recording:
    """Marks a span of emitted lines; positions are -1 until set."""

    start_pos: int = -1
    end_pos: int = -1


@dataclass
class _Scope:
    name: str
    is_public: bool = False
    name_to_value: dict[str, str] = field(default_factory=dict)


class ExpandMacros:
    """Collects assembly lines, expanding backtick-prefixed names bound in nested scopes."""

    def __init__(self, asm_prefix: str = "", output_tags: bool = False) -> None:
        self.asm_prefix = asm_prefix
        self.output_tags = output_tags
        self.scopes: list[_Scope] = []
        self.value_to_name: dict[str, set[tuple[int, str]]] = {}
        self.res_text: list[list[str]] = []
        self.next_label_id = 0
        self.next_error_label_id = 1
        self.next_output_error_label_id = 1
        self.num_active_recordings = 0
        self.tag_stack: list[str] = []

    def begin_recording(self, recording: Recording) -> None:
        if recording.start_pos != -1 or recording.end_pos != -1:
            raise RuntimeError("recording already started")
        recording.start_pos = len(self.res_text)
        self.num_active_recordings += 1

    def end_recording(self, recording: Recording) -> list[list[str]]:
        if recording.start_pos == -1 or recording.end_pos != -1:
            raise RuntimeError("recording is not active")
        recording.end_pos = len(self.res_text)
        self.num_active_recordings -= 1
        return [list(line) for line in self.res_text[recording.start_pos:recording.end_pos]]

    def append_recording(self, lines) -> None:
        self.res_text.extend(list(line) for line in lines)

    def _require_no_recording(self) -> None:
        if self.num_active_recordings:
            raise RuntimeError("cannot allocate labels while recording")

    def alloc_label(self) -> str:
        self._require_no_recording()
        label = f"_{self.asm_prefix}label_{self.next_label_id}"
        self.next_label_id += 1
        return label

    def alloc_error_label(self) -> str:
        self._require_no_recording()
        label = f"{self.asm_prefix}label_error_{self.next_error_label_id}"
        self.next_error_label_id += 1
        return label

    def begin_scope(self, name: str, is_public: bool = False) -> None:
        self.scopes.append(_Scope(name, is_public))

    def end_scope(self) -> None:
        if not self.scopes:
            raise RuntimeError("no scope to end")
        level = len(self.scopes) - 1
        for name, value in self.scopes[-1].name_to_value.items():
            names = self.value_to_name[value]
            names.remove((level, name))
            if not names:
                del self.value_to_name[value]
        self.scopes.pop()

    @contextmanager
    def scope(self, name: str, is_public: bool = False) -> Iterator[ExpandMacros]:
        self.begin_scope(name, is_public)
        try:
            yield self
        finally:
            self.end_scope()

    @contextmanager
    def tag(self, name: str) -> Iterator[ExpandMacros]:
        self.tag_stack.append(name)
        try:
            yield self
        finally:
            self.tag_stack.pop()

    def bind_value(self, name: str, value: str) -> None:
        if not self.scopes:
            raise RuntimeError("no scope to bind into")
        top = self.scopes[-1]
        if name in top.name_to_value:
            raise ValueError(f"name already bound in this scope: {name}")
        entry = (len(self.scopes) - 1, name)
        names = self.value_to_name.setdefault(value, set())
        if entry in names:
            raise ValueError(f"name already bound: {name}")
        top.name_to_value[name] = value
        names.add(entry)

    def bind(self, item, name: str) -> None:
        """Bind a register, spill slot, or a sequence of them (as ``name_0``, ``name_1``, ...)."""
        if hasattr(item, "bind_to"):
            item.bind_to(self, name)
            return
        if isinstance(item, (str, bytes)):
            raise TypeError("bind takes registers or spill slots; use bind_value for text")
        for index, child in enumerate(item):
            self.bind(child, f"{name}_{index}")

    def lookup_value(self, name: str) -> str:
        last = len(self.scopes) - 1
        for level in range(last, -1, -1):
            scope = self.scopes[level]
            if level != last and not scope.is_public:
                continue
            if name in scope.name_to_value:
                return scope.name_to_value[name]
        raise KeyError(name)

    def describe_scope(self) -> str:
        return "/".join(scope.name for scope in self.scopes)

    def describe_name(self, name: str) -> str:
        value = self.lookup_value(name)
        names = sorted(self.value_to_name[value])
        res = f"{name}={value}"
        if len(names) >= 2:
            res += "("
            first = True
            for _, other in names:
                if not first:
                    res += ","
                if other != name:
                    res += other
                    first = False
            res += ")"
        return res

    def expand(self, text: str) -> tuple[str, list[str]]:
        """Replace every ```name`` with its bound value; also return the names used."""
        out: list[str] = []
        used: list[str] = []
        buffer: list[str] = []
        in_name = False

        for c in [*text, None]:
            if in_name:
                if c is not None and _is_name_char(c):
                    buffer.append(c)
                else:
                    in_name = False
                    word = "".join(buffer)
                    out.append(self.lookup_value(word))
                    used.append(word)
                    buffer.clear()
            if not in_name:
                if c == "`":
                    in_name = True
                elif c is not None:
                    out.append(c)

        return "".join(out), used

    def append(self, text: str, line: int = 0) -> None:
        if not text:
            raise ValueError("cannot append an empty line")
        if not self.scopes:
            raise RuntimeError("append needs an active scope")
        expanded, _ = self.expand(text)
        tag = self.tag_stack[-1] if self.tag_stack else ""
        comment = f" # {self.scopes[-1].name}:{line}    "
        self.res_text.append([tag, expanded, comment, text])

    def format_res_text(self) -> str:
        """Render all lines with numbered labels and aligned comment columns."""
        rows: list[list[str]] = []
        for number, line in enumerate(self.res_text, start=1):
            tag = line[0]
            if self.output_tags and tag:
                tag = "_" + tag
            row = list(line)
            row[1] = f"{self.asm_prefix}Xx_{number}{tag}: {row[1]}"
            rows.append(row)

        if not rows:
            return ""

        widths: list[int] = []
        for row in rows:
            for x in range(1, len(row)):
                while len(widths) <= x:
                    widths.append(0)
                widths[x] = max(widths[x], len(row[x]))
        widths[1] = COMMENT_ASM_LINE_SIZE

        out: list[str] = []
        for row in rows:
            for x in range(1, len(row)):
                out.append(row[x])
                if x != len(row) - 1:
                    out.append(" " * max(0, widths[x] - len(row[x])))
            out.append("\n")
        return "".join(out)


@dataclass(frozen=True)
class RegScalar:
    """A 64-bit general purpose register; values past 15 are pseudo-registers."""

    value: int = -1

    def name(self, num_bits: int = 64) -> str:
        if self.value < 0:
            raise ValueError("register is unassigned")
        names = _SCALAR_NAMES_BY_BITS.get(num_bits)
        if names is None:
            raise ValueError(f"unsupported register width: {num_bits}")
        if self.value < len(names):
            return names[self.value]
        return format_str("PSEUDO_#_#", self.value, num_bits)

    def bind_to(self, macros: ExpandMacros, name: str) -> None:
        macros.bind_value(name, self.name(64))
        macros.bind_value(name + "_32", self.name(32))
        macros.bind_value(name + "_16", self.name(16))
        macros.bind_value(name + "_8", self.name(8))


REG_RSP = RegScalar(0)
REG_RAX = RegScalar(1)
REG_RDX = RegScalar(2)
REG_RCX = RegScalar(3)
REG_RBX = RegScalar(4)
REG_RBP = RegScalar(5)
REG_RSI = RegScalar(6)
REG_RDI = RegScalar(7)
REG_R8 = RegScalar(8)
REG_R9 = RegScalar(9)
REG_R10 = RegScalar(10)
REG_R11 = RegScalar(11)
REG_R12 = RegScalar(12)
REG_R13 = RegScalar(13)
REG_R14 = RegScalar(14)
REG_R15 = RegScalar(15)


@dataclass(frozen=True)
class RegVector:
    """A SIMD register, named XMM/YMM/ZMM by width."""

    value: int = -1
    default_num_bits: int = 128
    enable_all_instructions: bool = False

    def name(self, num_bits: int = 512) -> str:
        if self.value < 0:
            raise ValueError("register is unassigned")
        prefix = _VECTOR_PREFIX_BY_BITS.get(num_bits)
        if prefix is None:
            raise ValueError(f"unsupported register width: {num_bits}")
        if self.value >= 32 or (
            not self.enable_all_instructions and (self.value >= 16 or num_bits != 128)
        ):
            prefix = "PSEUDO_" + prefix
        return format_str("#MM#", prefix, self.value)

    def bind_to(self, macros: ExpandMacros, name: str) -> None:
        macros.bind_value(name, self.name(self.default_num_bits))
        macros.bind_value(name + "_512", self.name(512))
        macros.bind_value(name + "_256", self.name(256))
        macros.bind_value(name + "_128", self.name(128))


@dataclass(frozen=True)
class RegSpill:
    """A slot in the stack spill area, addressed relative to RSP."""

    value: int = -1
    size: int = -1
    alignment: int = -1

    def rsp_offset(self) -> int:
        """Offset from RSP; negative for every slot in the spill area."""
        return self.value - SPILL_BYTES

    def name(self) -> str:
        if self.value < 0 or self.size < 1 or self.alignment < 1:
            raise ValueError("spill slot is unassigned")
        if self.value % self.alignment != 0:
            raise ValueError("spill slot is misaligned")
        if self.value + self.size > SPILL_BYTES:
            raise ValueError("spill slot exceeds the spill area")
        return format_str("[RSP+#]", to_hex(self.rsp_offset()))

    def bind_to(self, macros: ExpandMacros, name: str) -> None:
        macros.bind_value(name, self.name())
        macros.bind_value(name + "_rsp_offset", to_hex(self.rsp_offset()))

    def __add__(self, byte_offset: int) -> RegSpill:
        return RegSpill(self.value + byte_offset, self.size - byte_offset, 1)


class RegAlloc:
    """Hands out scalar registers, vector registers and spill slots."""

    def __init__(self) -> None:
        self.order_to_scalar = [-1] * NUM_PSEUDO_REGISTERS
        self.scalar_to_order = [-1] * NUM_PSEUDO_REGISTERS
        self.scalars: set[int] = set()
        self.vectors: set[int] = set(range(NUM_PSEUDO_REGISTERS))
        self.spills = [True] * SPILL_BYTES

        allocation_order = [
            REG_RBX, REG_RBP, REG_RSI, REG_RDI,
            REG_R8, REG_R9, REG_R10, REG_R11,
            REG_R12, REG_R13, REG_R14, REG_R15,
            REG_RCX, REG_RDX, REG_RAX,
        ]
        allocation_order += [RegScalar(x) for x in range(16, NUM_PSEUDO_REGISTERS)]
        for order, reg in enumerate(allocation_order):
            self.order_to_scalar[order] = reg.value
            self.scalar_to_order[reg.value] = order
            self.add(reg)

    def copy(self) -> RegAlloc:
        clone = RegAlloc.__new__(RegAlloc)
        clone.order_to_scalar = list(self.order_to_scalar)
        clone.scalar_to_order = list(self.scalar_to_order)
        clone.scalars = set(self.scalars)
        clone.vectors = set(self.vectors)
        clone.spills = list(self.spills)
        return clone

    def add(self, scalar: RegScalar) -> None:
        """Return a scalar register to the free pool."""
        order = self.scalar_to_order[scalar.value]
        if order == -1:
            raise ValueError(f"register cannot be allocated: {scalar.value}")
        if order in self.scalars:
            raise ValueError(f"register is already free: {scalar.value}")
        self.scalars.add(order)

    def get_scalar(self, reg: RegScalar | None = None) -> RegScalar:
        if not self.scalars:
            raise RuntimeError("out of scalar registers")
        if reg is None or reg.value == -1:
            order = min(self.scalars)
        else:
            order = self.scalar_to_order[reg.value]
        if order not in self.scalars:
            raise RuntimeError(f"register is not free: {reg}")
        self.scalars.remove(order)
        return RegScalar(self.order_to_scalar[order])

    def get_vector(self, default_num_bits: int = 128) -> RegVector:
        if not self.vectors:
            raise RuntimeError("out of vector registers")
        value = min(self.vectors)
        self.vectors.remove(value)
        return RegVector(value, default_num_bits)

    def get_spill(self, size: int = 8, alignment: int | None = None) -> RegSpill:
        if alignment is None or alignment == -1:
            alignment = size
        if alignment not in _VALID_ALIGNMENTS:
            raise ValueError(f"invalid spill alignment: {alignment}")
        total = len(self.spills)
        for start in range(0, total, alignment):
            end = start + size
            if end <= total and all(self.spills[start:end]):
                self.spills[start:end] = [False] * size
                return RegSpill(start, size, alignment)
        raise RuntimeError("out of spill space")

    def bind_scalar(
        self, macros: ExpandMacros, name: str, reg: RegScalar | None = None
    ) -> RegScalar:
        res = self.get_scalar(reg)
        macros.bind(res, name)
        return res

    def bind_vector(
        self, macros: ExpandMacros, name: str, default_num_bits: int = 128
    ) -> RegVector:
        res = self.get_vector(default_num_bits)
        macros.bind(res, name)
        return res

    def bind_spill(
        self, macros: ExpandMacros, name: str, size: int = 8, alignment: int | None = None
    ) -> RegSpill:
        res = self.get_spill(size, alignment)
        macros.bind(res, name)
        return res