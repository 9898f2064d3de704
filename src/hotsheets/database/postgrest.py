"""
Traducción de predicados a filtros de PostgREST.

Las hojas del And de primer nivel van por los métodos del query builder
(`eq`, `gte`, `ilike`...). Lo compuesto (OR, AND anidados) tiene que viajar
como árbol lógico en texto (`or=(...)`): ese texto se arma solo acá y todo
literal pasa por `quote`, así una ciudad como "Winchester, MA" o un barrio
con comillas no rompe la expresión.
"""

from typing import Any

from hotsheets.matching.compiler import SortOrder
from hotsheets.matching.predicates import (
    LEAF_TYPES,
    And,
    Eq,
    In,
    Like,
    Not,
    Or,
    Predicate,
    Range,
    all_of,
    any_of,
    is_true,
    negate,
)


def apply_predicate(query, predicate: Predicate):
    """
    Aplica un predicado a un query builder de postgrest.

    Returns:
        El builder con los filtros agregados
    """
    if is_true(predicate):
        return query

    predicate = null_safe(predicate)
    operands = predicate.operands if isinstance(predicate, And) else (predicate,)

    composites = []
    for operand in operands:
        if _is_simple(operand):
            query = _apply_leaf(query, operand)
        else:
            composites.append(operand)

    if len(composites) == 1 and isinstance(composites[0], Or):
        query = query.or_(_render_list(composites[0].operands))
    elif composites:
        # Varios compuestos: un solo parámetro or=(and(...)) con todos
        query = query.or_(render(all_of(*composites)))

    return query


def apply_order(query, sort: SortOrder):
    """Orden pedido + desempate estable por id ascendente."""
    query = query.order(sort.column, desc=sort.descending, nullsfirst=False)
    if sort.column != "id":
        query = query.order("id", desc=False)
    return query


def null_safe(predicate: Predicate) -> Predicate:
    """
    Reescribe negaciones para que respeten la semántica de `matches`.

    En SQL `NOT (description ILIKE x)` es NULL cuando description es NULL y
    la fila se pierde; acá se transforma en `description IS NULL OR NOT ...`.
    """
    if isinstance(predicate, And):
        return all_of(*[null_safe(p) for p in predicate.operands])
    if isinstance(predicate, Or):
        if not predicate.operands:
            raise ValueError("Or vacío: el predicado no matchea nada")
        return any_of(*[null_safe(p) for p in predicate.operands])
    if isinstance(predicate, Not):
        operand = predicate.operand
        if not isinstance(operand, LEAF_TYPES):
            return null_safe(negate(operand))
        if isinstance(operand, Eq) and operand.value is None:
            return predicate
        return Or((Eq(operand.field, None), predicate))
    return predicate


def render(predicate: Predicate) -> str:
    """Renderiza un predicado como árbol lógico de PostgREST."""
    if isinstance(predicate, And):
        if not predicate.operands:
            raise ValueError("And vacío dentro de un árbol lógico")
        return f"and({_render_list(predicate.operands)})"
    if isinstance(predicate, Or):
        if not predicate.operands:
            raise ValueError("Or vacío dentro de un árbol lógico")
        return f"or({_render_list(predicate.operands)})"
    if isinstance(predicate, Not):
        inner = render(predicate.operand)
        if inner.startswith(("and(", "or(")):
            return f"not.{inner}"
        field, _, rest = inner.partition(".")
        return f"{field}.not.{rest}"
    if isinstance(predicate, Eq):
        if predicate.value is None:
            return f"{predicate.field}.is.null"
        return f"{predicate.field}.eq.{quote(predicate.value)}"
    if isinstance(predicate, In):
        return f"{predicate.field}.in.{_in_list(predicate.values)}"
    if isinstance(predicate, Range):
        parts = []
        if predicate.min is not None:
            parts.append(f"{predicate.field}.gte.{quote(predicate.min)}")
        if predicate.max is not None:
            parts.append(f"{predicate.field}.lte.{quote(predicate.max)}")
        if not parts:
            raise ValueError(f"Range sin cotas: {predicate.field}")
        return parts[0] if len(parts) == 1 else f"and({','.join(parts)})"
    if isinstance(predicate, Like):
        pattern = like_pattern(predicate.value, predicate.mode)
        return f"{predicate.field}.ilike.{quote(pattern)}"
    raise TypeError(f"Predicado desconocido: {predicate!r}")


def quote(value: Any) -> str:
    """
    Literal seguro para un árbol lógico.

    Números y booleanos van crudos; todo lo demás entre comillas dobles con
    `\\` y `"` escapados, que es lo que PostgREST acepta para valores con
    caracteres reservados (`,`, `.`, `(`, `)`, `:`).
    """
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return _format_number(value)
    text = str(value).replace("\\", "\\\\").replace('"', '\\"')
    return f'"{text}"'


def like_pattern(value: str, mode: str = "contains") -> str:
    """Patrón ILIKE con los comodines del usuario escapados."""
    escaped = value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    if mode == "prefix":
        return f"{escaped}%"
    return f"%{escaped}%"


def _is_simple(predicate: Predicate) -> bool:
    if isinstance(predicate, LEAF_TYPES):
        return True
    # Solo IS NOT NULL queda como Not de hoja después de null_safe
    return (
        isinstance(predicate, Not)
        and isinstance(predicate.operand, Eq)
        and predicate.operand.value is None
    )


def _apply_leaf(query, predicate: Predicate):
    if isinstance(predicate, Not):
        return query.not_.is_(predicate.operand.field, "null")
    if isinstance(predicate, Eq):
        if predicate.value is None:
            return query.is_(predicate.field, "null")
        return query.eq(predicate.field, predicate.value)
    if isinstance(predicate, In):
        return query.filter(predicate.field, "in", _in_list(predicate.values))
    if isinstance(predicate, Range):
        # 3.0 -> "3": PostgREST rechaza "3.0" contra columnas integer
        if predicate.min is not None:
            query = query.gte(predicate.field, _format_number(predicate.min))
        if predicate.max is not None:
            query = query.lte(predicate.field, _format_number(predicate.max))
        return query
    if isinstance(predicate, Like):
        return query.ilike(predicate.field, like_pattern(predicate.value, predicate.mode))
    raise TypeError(f"Predicado desconocido: {predicate!r}")


def _render_list(predicates) -> str:
    return ",".join(render(p) for p in predicates)


def _in_list(values) -> str:
    return "(" + ",".join(quote(v) for v in values) + ")"


def _format_number(value) -> str:
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)
