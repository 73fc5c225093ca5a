"""Function selectors for diamond facets and agent override tables.

Selectors are the first four bytes of ``keccak256(signature)`` where the
signature is canonical: no spaces, no parameter names, tuples expanded as
``(t1,t2)``.
"""

from __future__ import annotations

import json
from collections.abc import Iterable, Sequence
from enum import IntEnum
from pathlib import Path
from typing import Any

from eth_utils import keccak
from loguru import logger
from pydantic import BaseModel, field_validator

from agentfi_ops.core.utils.collections import to_bytes32

INIT_SIGNATURE = "init(bytes)"

ROLE_PUBLIC = to_bytes32(0)
ROLE_OWNER = to_bytes32(1)
ROLE_STRATEGY_MANAGER = to_bytes32(9)


class FacetCutAction(IntEnum):
    Add = 0
    Replace = 1
    Remove = 2


def calc_sighash(signature: str) -> str:
    return "0x" + keccak(text=signature).hex()[:8]


def _split_top_level(params: str) -> list[str]:
    parts: list[str] = []
    depth = 0
    current = ""
    for ch in params:
        if ch == "(":
            depth += 1
        elif ch == ")":
            depth -= 1
        if ch == "," and depth == 0:
            parts.append(current)
            current = ""
            continue
        current += ch
    if current.strip():
        parts.append(current)
    return [p.strip() for p in parts]


_TYPE_ALIASES = {"uint": "uint256", "int": "int256"}


def _canonical_type(type_: str) -> str:
    base, bracket, dims = type_.partition("[")
    return _TYPE_ALIASES.get(base, base) + bracket + dims


def _canonical_param(param: str) -> str:
    if param.startswith("tuple") and param[len("tuple") :].lstrip().startswith("("):
        param = param[len("tuple") :].lstrip()
    if param.startswith("("):
        depth = 0
        for idx, ch in enumerate(param):
            depth += ch == "("
            depth -= ch == ")"
            if depth == 0:
                inner = ",".join(
                    _canonical_param(p) for p in _split_top_level(param[1:idx])
                )
                rest = param[idx + 1 :].split()
                suffix = rest[0] if rest and rest[0].startswith("[") else ""
                return f"({inner}){suffix}"
        raise ValueError(f"unbalanced parentheses in '{param}'")
    return _canonical_type(param.split()[0])


def _split_signature(signature: str) -> tuple[str, list[str]]:
    text = signature.strip()
    if text.startswith("function "):
        text = text[len("function ") :].strip()
    open_idx = text.find("(")
    if open_idx <= 0:
        raise ValueError(f"malformed function signature '{signature}'")
    depth = 0
    for idx in range(open_idx, len(text)):
        depth += text[idx] == "("
        depth -= text[idx] == ")"
        if depth == 0:
            name = text[:open_idx].strip()
            raw_params = _split_top_level(text[open_idx + 1 : idx])
            params = [_canonical_param(p) for p in raw_params]
            return name, params
    raise ValueError(f"malformed function signature '{signature}'")


def canonical_signature(signature: str) -> str:
    """``"function foo(uint256 amount) external"`` -> ``"foo(uint256)"``."""
    name, params = _split_signature(signature)
    return f"{name}({','.join(params)})"


def signature_input_types(signature: str) -> list[str]:
    return _split_signature(signature)[1]


def _abi_type(param: dict[str, Any]) -> str:
    type_ = param["type"]
    if type_.startswith("tuple"):
        inner = ",".join(_abi_type(c) for c in param.get("components", []))
        return f"({inner}){type_[len('tuple') :]}"
    return type_


def abi_signature(fragment: dict[str, Any]) -> str:
    inputs = ",".join(_abi_type(p) for p in fragment.get("inputs", []))
    return f"{fragment['name']}({inputs})"


def function_signatures(abi: Iterable[dict[str, Any]]) -> list[str]:
    return [abi_signature(f) for f in abi if f.get("type") == "function"]


def calc_sighashes(
    abi: Iterable[dict[str, Any]], contract_name: str = "", debug: bool = False
) -> list[str]:
    signatures = function_signatures(abi)
    selectors = [calc_sighash(sig) for sig in signatures]
    if debug:
        header = f"selectors for {contract_name}" if contract_name else "selectors"
        logger.info(
            "\n".join(
                [header, *(f"{sel} {sig}" for sel, sig in zip(selectors, signatures))]
            )
        )
    return selectors


def get_selector(fragment: str | dict[str, Any]) -> str:
    if isinstance(fragment, dict):
        return calc_sighash(abi_signature(fragment))
    return calc_sighash(canonical_signature(fragment))


class Selectors(list):
    """Selector list that remembers the ABI it was derived from."""

    def __init__(self, selectors: Iterable[str] = (), abi: Sequence[dict] = ()):
        super().__init__(selectors)
        self.abi = list(abi)

    def remove(self, signatures: Iterable[str]) -> Selectors:  # type: ignore[override]
        drop = {get_selector(sig) for sig in signatures}
        return Selectors((s for s in self if s not in drop), self.abi)

    def get(self, signatures: Iterable[str]) -> Selectors:
        keep = {get_selector(sig) for sig in signatures}
        return Selectors((s for s in self if s in keep), self.abi)


def get_selectors(abi: Sequence[dict[str, Any]]) -> Selectors:
    """All function selectors of ``abi`` except the diamond ``init(bytes)`` hook."""
    selectors = [
        calc_sighash(sig) for sig in function_signatures(abi) if sig != INIT_SIGNATURE
    ]
    return Selectors(selectors, abi)


def remove_selectors(selectors: Iterable[str], signatures: Iterable[str]) -> list[str]:
    drop = {get_selector(sig) for sig in signatures}
    return [s for s in selectors if s not in drop]


def find_address_position_in_facets(
    address: str, facets: Sequence[Any]
) -> int | None:
    target = address.lower()
    for idx, facet in enumerate(facets):
        if isinstance(facet, dict):
            facet_address = facet.get("facetAddress") or facet.get("facet_address")
        elif isinstance(facet, (tuple, list)):
            facet_address = facet[0]
        else:
            facet_address = getattr(facet, "facet_address", None)
        if facet_address and str(facet_address).lower() == target:
            return idx
    return None


def get_combined_abi(paths: Iterable[str | Path]) -> list[dict[str, Any]]:
    """Merge artifact ABIs, dropping constructors and duplicate entries."""
    seen: set[str] = set()
    combined: list[dict[str, Any]] = []
    for path in paths:
        data = json.loads(Path(path).read_text())
        abi = data.get("abi", []) if isinstance(data, dict) else data
        for entry in abi:
            if entry.get("type") == "constructor":
                continue
            key = json.dumps(entry, sort_keys=True)
            if key in seen:
                continue
            seen.add(key)
            combined.append(entry)
    return combined


class FunctionParams(BaseModel):
    selector: str
    signature: str | None = None
    required_role: str

    @field_validator("selector")
    @classmethod
    def _selector_shape(cls, value: str) -> str:
        value = value.lower()
        if len(value) != 10 or not value.startswith("0x"):
            raise ValueError(f"selector '{value}' is not 4 bytes")
        int(value, 16)
        return value

    @field_validator("required_role", mode="before")
    @classmethod
    def _role_word(cls, value: int | str) -> str:
        return to_bytes32(value)

    def as_tuple(self) -> tuple[str, str]:
        return self.selector, self.required_role


def build_function_params(
    signatures: Iterable[str], role: int | str
) -> list[FunctionParams]:
    return [
        FunctionParams(
            selector=get_selector(sig),
            signature=canonical_signature(sig),
            required_role=role,
        )
        for sig in signatures
    ]


def validate_function_params(rows: Iterable[FunctionParams]) -> None:
    for row in rows:
        if row.signature is None:
            continue
        expected = calc_sighash(canonical_signature(row.signature))
        if expected != row.selector:
            raise ValueError(
                f"selector mismatch for {row.signature}: "
                f"table has {row.selector}, computed {expected}"
            )
