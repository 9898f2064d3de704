"""
AST de predicados.

Expresión booleana estructurada que produce el compilador de criterios.
Los adaptadores de store la traducen a su lenguaje de consulta pasando
todos los literales como parámetros; nunca se arma un string a mano.

Variantes:
- Eq(field, value): igualdad (value None = IS NULL)
- In(field, values): pertenencia a un conjunto
- Range(field, min, max): rango inclusivo, cotas opcionales (números o
  timestamps ISO)
- Like(field, value, mode): substring o prefijo, sin distinguir mayúsculas
- Not(operand), And(operands), Or(operands)
"""

from dataclasses import dataclass
from typing import Any, Literal, Mapping, Optional, Union


@dataclass(frozen=True)
class Eq:
    field: str
    value: Any


@dataclass(frozen=True)
class In:
    field: str
    values: tuple


@dataclass(frozen=True)
class Range:
    field: str
    min: Optional[Union[float, str]] = None
    max: Optional[Union[float, str]] = None


@dataclass(frozen=True)
class Like:
    field: str
    value: str
    mode: Literal["contains", "prefix"] = "contains"


@dataclass(frozen=True)
class Not:
    operand: "Predicate"


@dataclass(frozen=True)
class And:
    operands: tuple = ()


@dataclass(frozen=True)
class Or:
    operands: tuple = ()


Predicate = Union[Eq, In, Range, Like, Not, And, Or]

LEAF_TYPES = (Eq, In, Range, Like)

# Predicado identidad: un And vacío matchea todo
TRUE = And(())


def is_true(predicate: Predicate) -> bool:
    return isinstance(predicate, And) and not predicate.operands


def all_of(*predicates: Predicate) -> Predicate:
    """And aplanado: descarta identidades y colapsa un único hijo."""
    operands: list = []
    for p in predicates:
        if isinstance(p, And):
            operands.extend(p.operands)
        else:
            operands.append(p)
    if len(operands) == 1:
        return operands[0]
    return And(tuple(operands))


def any_of(*predicates: Predicate) -> Predicate:
    """Or aplanado. Si alguna rama es la identidad, el resultado también."""
    operands: list = []
    for p in predicates:
        if is_true(p):
            return TRUE
        if isinstance(p, Or):
            operands.extend(p.operands)
        else:
            operands.append(p)
    if len(operands) == 1:
        return operands[0]
    return Or(tuple(operands))


def negate(predicate: Predicate) -> Predicate:
    """Niega empujando el Not hasta las hojas (De Morgan)."""
    if isinstance(predicate, And):
        return Or(tuple(negate(p) for p in predicate.operands))
    if isinstance(predicate, Or):
        return And(tuple(negate(p) for p in predicate.operands))
    if isinstance(predicate, Not):
        return predicate.operand
    return Not(predicate)


def matches(predicate: Predicate, record: Mapping[str, Any]) -> bool:
    """
    Evalúa el predicado contra un registro en memoria.

    Es la semántica de referencia que los adaptadores de store deben
    respetar: un campo NULL no cumple ninguna hoja salvo Eq(field, None).
    """
    if isinstance(predicate, And):
        return all(matches(p, record) for p in predicate.operands)
    if isinstance(predicate, Or):
        return any(matches(p, record) for p in predicate.operands)
    if isinstance(predicate, Not):
        return not matches(predicate.operand, record)

    value = record.get(predicate.field)

    if isinstance(predicate, Eq):
        if predicate.value is None:
            return value is None
        return value == predicate.value

    if value is None:
        return False

    if isinstance(predicate, In):
        return value in predicate.values

    if isinstance(predicate, Range):
        bounds = (predicate.min, predicate.max)
        if any(isinstance(b, str) for b in bounds):
            # Timestamps ISO en UTC: el orden lexicográfico es el cronológico
            comparable = str(value)
        else:
            try:
                comparable = float(value)
            except (TypeError, ValueError):
                return False
        if predicate.min is not None and comparable < predicate.min:
            return False
        if predicate.max is not None and comparable > predicate.max:
            return False
        return True

    if isinstance(predicate, Like):
        text = str(value).lower()
        needle = predicate.value.lower()
        if predicate.mode == "prefix":
            return text.startswith(needle)
        return needle in text

    raise TypeError(f"Predicado desconocido: {predicate!r}")
