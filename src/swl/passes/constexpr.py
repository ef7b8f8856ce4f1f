"""Compile-time constant expressions.

`(i32.constexpr (i32.add (global.get $BASE) (i32.const 4)))` is evaluated
and replaced by `(i32.const 12)`. Expressions are folded instructions over
constants and module globals, evaluated with WebAssembly semantics:
integers wrap around, f32 results are rounded to single precision, and
anything that would trap (division by zero, ...) is an error.
"""

from __future__ import annotations

import logging
import math
import struct
from collections.abc import Callable
from dataclasses import dataclass

from swl.context import PassContext, expect_module
from swl.errors import ConstExprError
from swl.passes.sorter import index_space
from swl.serializer import serialize
from swl.tree import Atom, Node, SExpr, is_int_literal, parse_int_literal

logger = logging.getLogger(__name__)

INT_BITS = {"i32": 32, "i64": 64}
FLOAT_TYPES = frozenset({"f32", "f64"})
VALUE_TYPES = frozenset({"i32", "i64", "f32", "f64"})

CONSTEXPR_SUFFIX = ".constexpr"


@dataclass(frozen=True)
class Value:
    """A typed constant. Integers are kept unsigned, modulo 2**bits."""

    type: str
    value: int | float

    def format(self) -> str:
        if self.type in INT_BITS:
            assert isinstance(self.value, int)
            return str(to_signed(self.value, INT_BITS[self.type]))
        return format_float(float(self.value), self.type)


# =============================================================================
# Numeric helpers
# =============================================================================


def to_signed(value: int, bits: int) -> int:
    value &= (1 << bits) - 1
    return value - (1 << bits) if value >> (bits - 1) else value


def to_f32(value: float) -> float:
    """Round a Python float to the nearest single-precision value."""
    if math.isnan(value) or math.isinf(value):
        return value
    try:
        return struct.unpack("<f", struct.pack("<f", value))[0]
    except OverflowError:
        return math.copysign(math.inf, value)


def format_float(value: float, type_: str) -> str:
    if math.isnan(value):
        return "nan" if math.copysign(1.0, value) > 0 else "-nan"
    if math.isinf(value):
        return "inf" if value > 0 else "-inf"
    if type_ == "f64":
        return repr(value)
    # Shortest spelling that reads back as the same f32
    for precision in range(1, 18):
        text = f"{value:.{precision}g}"
        if to_f32(float(text)) == value:
            return text
    return repr(value)


def parse_float(text: str) -> float:
    text = text.replace("_", "")
    sign = -1.0 if text.startswith("-") else 1.0
    body = text.lstrip("+-")
    if body == "inf":
        return sign * math.inf
    if body == "nan" or body.startswith("nan:"):
        return math.copysign(math.nan, sign)
    if body.startswith("0x"):
        return sign * float.fromhex(body)
    return sign * float(body)


def _float_min(a: float, b: float) -> float:
    if math.isnan(a) or math.isnan(b):
        return math.nan
    if a == b == 0.0:
        return a if math.copysign(1.0, a) < 0 else b
    return min(a, b)


def _float_max(a: float, b: float) -> float:
    if math.isnan(a) or math.isnan(b):
        return math.nan
    if a == b == 0.0:
        return a if math.copysign(1.0, a) > 0 else b
    return max(a, b)


def _float_div(a: float, b: float) -> float:
    if b == 0.0:
        if a == 0.0 or math.isnan(a):
            return math.nan
        return math.copysign(math.inf, a) * math.copysign(1.0, b)
    return a / b


def _float_sqrt(a: float) -> float:
    if math.isnan(a) or a < 0:
        return math.nan
    return math.sqrt(a)


def _float_round(fn: Callable[[float], int]) -> Callable[[float], float]:
    def apply(a: float) -> float:
        if math.isnan(a) or math.isinf(a):
            return a
        return math.copysign(float(fn(a)), a)

    return apply


def _div_s(a: int, b: int, bits: int) -> int:
    if b == 0:
        raise ConstExprError("integer divide by zero")
    sa, sb = to_signed(a, bits), to_signed(b, bits)
    if sa == -(1 << (bits - 1)) and sb == -1:
        raise ConstExprError("integer overflow")
    quotient = abs(sa) // abs(sb)
    return -quotient if (sa < 0) != (sb < 0) else quotient


def _rem_s(a: int, b: int, bits: int) -> int:
    if b == 0:
        raise ConstExprError("integer divide by zero")
    sa, sb = to_signed(a, bits), to_signed(b, bits)
    remainder = abs(sa) % abs(sb)
    return -remainder if sa < 0 else remainder


def _div_u(a: int, b: int, bits: int) -> int:
    if b == 0:
        raise ConstExprError("integer divide by zero")
    return a // b


def _rem_u(a: int, b: int, bits: int) -> int:
    if b == 0:
        raise ConstExprError("integer divide by zero")
    return a % b


def _rotl(a: int, b: int, bits: int) -> int:
    k = b % bits
    return (a << k) | (a >> (bits - k))


def _rotr(a: int, b: int, bits: int) -> int:
    k = b % bits
    return (a >> k) | (a << (bits - k))


def _clz(a: int, bits: int) -> int:
    return bits - a.bit_length()


def _ctz(a: int, bits: int) -> int:
    return bits if a == 0 else (a & -a).bit_length() - 1


# Binary integer ops: (a, b, bits) -> int, operands unsigned
INT_BINARY: dict[str, Callable[[int, int, int], int]] = {
    "add": lambda a, b, bits: a + b,
    "sub": lambda a, b, bits: a - b,
    "mul": lambda a, b, bits: a * b,
    "div_s": _div_s,
    "div_u": _div_u,
    "rem_s": _rem_s,
    "rem_u": _rem_u,
    "and": lambda a, b, bits: a & b,
    "or": lambda a, b, bits: a | b,
    "xor": lambda a, b, bits: a ^ b,
    "shl": lambda a, b, bits: a << (b % bits),
    "shr_u": lambda a, b, bits: a >> (b % bits),
    "shr_s": lambda a, b, bits: to_signed(a, bits) >> (b % bits),
    "rotl": _rotl,
    "rotr": _rotr,
}

INT_UNARY: dict[str, Callable[[int, int], int]] = {
    "clz": _clz,
    "ctz": _ctz,
    "popcnt": lambda a, bits: a.bit_count(),
}

# Integer comparisons produce an i32 0 or 1
INT_COMPARE: dict[str, Callable[[int, int, int], bool]] = {
    "eq": lambda a, b, bits: a == b,
    "ne": lambda a, b, bits: a != b,
    "lt_u": lambda a, b, bits: a < b,
    "gt_u": lambda a, b, bits: a > b,
    "le_u": lambda a, b, bits: a <= b,
    "ge_u": lambda a, b, bits: a >= b,
    "lt_s": lambda a, b, bits: to_signed(a, bits) < to_signed(b, bits),
    "gt_s": lambda a, b, bits: to_signed(a, bits) > to_signed(b, bits),
    "le_s": lambda a, b, bits: to_signed(a, bits) <= to_signed(b, bits),
    "ge_s": lambda a, b, bits: to_signed(a, bits) >= to_signed(b, bits),
}

FLOAT_BINARY: dict[str, Callable[[float, float], float]] = {
    "add": lambda a, b: a + b,
    "sub": lambda a, b: a - b,
    "mul": lambda a, b: a * b,
    "div": _float_div,
    "min": _float_min,
    "max": _float_max,
    "copysign": math.copysign,
}

FLOAT_UNARY: dict[str, Callable[[float], float]] = {
    "neg": lambda a: -a,
    "abs": abs,
    "sqrt": _float_sqrt,
    "ceil": _float_round(math.ceil),
    "floor": _float_round(math.floor),
    "trunc": _float_round(math.trunc),
    "nearest": _float_round(round),
}

FLOAT_COMPARE: dict[str, Callable[[float, float], bool]] = {
    "eq": lambda a, b: a == b,
    "ne": lambda a, b: a != b,
    "lt": lambda a, b: a < b,
    "gt": lambda a, b: a > b,
    "le": lambda a, b: a <= b,
    "ge": lambda a, b: a >= b,
}


# =============================================================================
# Evaluation
# =============================================================================


@dataclass
class GlobalDef:
    """A module global, as far as constant evaluation cares."""

    name: str | None
    init: SExpr | None


def collect_globals(module: SExpr) -> list[GlobalDef]:
    """Collect globals in index order, imported globals first.

    Imported globals have no initializer.
    """
    return [
        GlobalDef(_identifier(decl), None if imported else _global_init(decl))
        for decl, imported in index_space(module, "global")
    ]


def _identifier(form: SExpr) -> str | None:
    if len(form.items) > 1 and isinstance(form.items[1], Atom):
        if form.items[1].is_identifier:
            return form.items[1].text
    return None


def _global_init(form: SExpr) -> SExpr | None:
    # (global $id? (export "x")* <type> <init...>) where <type> is T or (mut T)
    for idx, item in enumerate(form.items[1:], start=1):
        is_type = (isinstance(item, Atom) and item.text in VALUE_TYPES) or (
            isinstance(item, SExpr) and item.has_tag("mut")
        )
        if not is_type:
            continue
        init = form.items[idx + 1 :]
        if len(init) == 1 and isinstance(init[0], SExpr):
            return init[0]
        if init and all(isinstance(part, Atom) for part in init):
            return SExpr(list(init))
        return None
    return None


class ConstEvaluator:
    """Evaluate folded constant instructions against a module's globals."""

    def __init__(self, globals_: list[GlobalDef]) -> None:
        self.globals = globals_
        self._active: set[int] = set()

    def evaluate(self, expr: Node) -> Value:
        if not isinstance(expr, SExpr) or expr.tag is None:
            msg = f"Expected an instruction, got {serialize(expr)}"
            raise ConstExprError(msg)
        tag = expr.tag
        args = expr.items[1:]

        if tag == "global.get":
            return self._global_get(args)
        if tag.endswith(CONSTEXPR_SUFFIX):
            type_ = tag.removesuffix(CONSTEXPR_SUFFIX)
            if len(args) != 1:
                msg = f"{tag} expects exactly one expression"
                raise ConstExprError(msg)
            return self.evaluate_as(args[0], type_)

        type_, _, op = tag.partition(".")
        if type_ not in VALUE_TYPES or not op:
            msg = f"Unsupported instruction in constant expression: {tag}"
            raise ConstExprError(msg)
        if op == "const":
            return self._const(type_, args, tag)

        operands = [self.evaluate(arg) for arg in args]
        if type_ in INT_BITS:
            return self._int_op(type_, op, operands, tag)
        return self._float_op(type_, op, operands, tag)

    def evaluate_as(self, expr: Node, type_: str) -> Value:
        if type_ not in VALUE_TYPES:
            msg = f"Unknown constexpr type {type_}"
            raise ConstExprError(msg)
        value = self.evaluate(expr)
        if value.type != type_:
            msg = f"Expected a {type_} expression, got {value.type}: {serialize(expr)}"
            raise ConstExprError(msg)
        return value

    def _const(self, type_: str, args: list[Node], tag: str) -> Value:
        if len(args) != 1 or not isinstance(args[0], Atom):
            msg = f"{tag} expects one literal"
            raise ConstExprError(msg)
        text = args[0].text
        try:
            if type_ in INT_BITS:
                bits = INT_BITS[type_]
                return Value(type_, parse_int_literal(text) & ((1 << bits) - 1))
            if is_int_literal(text):
                number = float(parse_int_literal(text))
            else:
                number = parse_float(text)
        except ValueError as e:
            msg = f"Invalid {type_} literal {text!r}"
            raise ConstExprError(msg) from e
        return Value(type_, to_f32(number) if type_ == "f32" else number)

    def _global_get(self, args: list[Node]) -> Value:
        if len(args) != 1 or not isinstance(args[0], Atom):
            msg = "global.get expects one global reference"
            raise ConstExprError(msg)
        ref = args[0].text
        index = self._global_index(ref)
        global_ = self.globals[index]
        if global_.init is None:
            msg = f"Global {ref} has no constant initializer"
            raise ConstExprError(msg)
        if index in self._active:
            msg = f"Global {ref} depends on itself"
            raise ConstExprError(msg)
        self._active.add(index)
        try:
            return self.evaluate(global_.init)
        finally:
            self._active.discard(index)

    def _global_index(self, ref: str) -> int:
        if ref.startswith("$"):
            for idx, global_ in enumerate(self.globals):
                if global_.name == ref:
                    return idx
        elif is_int_literal(ref):
            idx = parse_int_literal(ref)
            if 0 <= idx < len(self.globals):
                return idx
        msg = f"Unknown global {ref}"
        raise ConstExprError(msg)

    def _int_op(self, type_: str, op: str, operands: list[Value], tag: str) -> Value:
        bits = INT_BITS[type_]
        mask = (1 << bits) - 1

        if op in ("wrap_i64", "extend_i32_s", "extend_i32_u"):
            (source,) = self._operands(operands, 1, tag)
            if source.type not in INT_BITS:
                msg = f"{tag} expects an integer operand, got {source.type}"
                raise ConstExprError(msg)
            assert isinstance(source.value, int)
            if op == "extend_i32_s":
                return Value(type_, to_signed(source.value, 32) & mask)
            return Value(type_, source.value & mask)
        if op.startswith("trunc_f"):
            (source,) = self._operands(operands, 1, tag)
            if source.type not in FLOAT_TYPES:
                msg = f"{tag} expects a float operand, got {source.type}"
                raise ConstExprError(msg)
            number = float(source.value)
            if math.isnan(number) or math.isinf(number):
                msg = f"{tag}: invalid conversion to integer"
                raise ConstExprError(msg)
            truncated = math.trunc(number)
            lower, upper = (0, mask) if op.endswith("_u") else (-(1 << (bits - 1)), mask >> 1)
            if not lower <= truncated <= upper:
                msg = f"{tag}: integer overflow"
                raise ConstExprError(msg)
            return Value(type_, truncated & mask)

        values = [self._expect(value, type_, tag) for value in operands]
        if op == "eqz":
            (a,) = self._operands(values, 1, tag)
            return Value("i32", int(a == 0))
        if op in INT_UNARY:
            (a,) = self._operands(values, 1, tag)
            return Value(type_, INT_UNARY[op](a, bits) & mask)
        if op in INT_BINARY:
            a, b = self._operands(values, 2, tag)
            return Value(type_, INT_BINARY[op](a, b, bits) & mask)
        if op in INT_COMPARE:
            a, b = self._operands(values, 2, tag)
            return Value("i32", int(INT_COMPARE[op](a, b, bits)))
        msg = f"Unsupported instruction in constant expression: {tag}"
        raise ConstExprError(msg)

    def _float_op(self, type_: str, op: str, operands: list[Value], tag: str) -> Value:
        round_ = to_f32 if type_ == "f32" else float

        if op.startswith("convert_i"):
            (source,) = self._operands(operands, 1, tag)
            if source.type not in INT_BITS:
                msg = f"{tag} expects an integer operand, got {source.type}"
                raise ConstExprError(msg)
            assert isinstance(source.value, int)
            bits = INT_BITS[source.type]
            number = source.value if op.endswith("_u") else to_signed(source.value, bits)
            return Value(type_, round_(float(number)))
        if op in ("promote_f32", "demote_f64"):
            (source,) = self._operands(operands, 1, tag)
            return Value(type_, round_(float(source.value)))

        values = [float(self._expect(value, type_, tag)) for value in operands]
        if op in FLOAT_UNARY:
            (a,) = self._operands(values, 1, tag)
            return Value(type_, round_(FLOAT_UNARY[op](a)))
        if op in FLOAT_BINARY:
            a, b = self._operands(values, 2, tag)
            return Value(type_, round_(FLOAT_BINARY[op](a, b)))
        if op in FLOAT_COMPARE:
            a, b = self._operands(values, 2, tag)
            return Value("i32", int(FLOAT_COMPARE[op](a, b)))
        msg = f"Unsupported instruction in constant expression: {tag}"
        raise ConstExprError(msg)

    @staticmethod
    def _expect(value: Value, type_: str, tag: str) -> int | float:
        if value.type != type_:
            msg = f"{tag} expects {type_} operands, got {value.type}"
            raise ConstExprError(msg)
        return value.value

    @staticmethod
    def _operands(values: list, count: int, tag: str) -> list:
        if len(values) != count:
            msg = f"{tag} expects {count} operand(s), got {len(values)}"
            raise ConstExprError(msg)
        return values


def fold_constexprs(module: SExpr, ctx: PassContext) -> None:
    """Replace every `(T.constexpr EXPR)` in the module with `(T.const VALUE)`."""
    expect_module(module, "constexpr")
    evaluator = ConstEvaluator(collect_globals(module))
    folded = 0
    for node in module.walk():
        for idx, item in enumerate(node.items):
            if not isinstance(item, SExpr) or item.tag is None:
                continue
            if not item.tag.endswith(CONSTEXPR_SUFFIX):
                continue
            type_ = item.tag.removesuffix(CONSTEXPR_SUFFIX)
            value = evaluator.evaluate(item)
            node.items[idx] = SExpr([Atom(f"{type_}.const"), Atom(value.format())], item.offset)
            folded += 1
    logger.debug("Folded %d constant expressions", folded)


__all__ = [
    "ConstEvaluator",
    "GlobalDef",
    "Value",
    "collect_globals",
    "fold_constexprs",
    "format_float",
    "parse_float",
    "to_f32",
    "to_signed",
]
