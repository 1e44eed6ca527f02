"""Validated shape of the fields extracted from an energy bill.

The language model returns loosely typed JSON. ``BillExtraction.from_llm_payload``
checks the shape first and then coerces values, so every mismatch surfaces as a
single ``pydantic.ValidationError`` that the gateway turns into an
``ExtractionError``.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, field_validator

from energy_bills.parsing import normalize_reference_month, parse_number


class EnergyItem(BaseModel):
    """A kWh quantity and its R$ value as printed on one bill line."""

    model_config = ConfigDict(frozen=True)

    quantity: float = 0.0
    value: float = 0.0

    @field_validator("quantity", "value", mode="before")
    @classmethod
    def _coerce_number(cls, raw: Any) -> float:
        if raw is None or raw == "":
            return 0.0
        return parse_number(raw)


class BillExtraction(BaseModel):
    """Fields read from a bill (Energia Elétrica, SCEEE, GD I, Iluminação Pública)."""

    model_config = ConfigDict(frozen=True)

    customer_number: str
    reference_month: str
    electric_energy: EnergyItem
    sceee_energy: EnergyItem | None = None
    compensated_energy: EnergyItem | None = None
    public_lighting_contrib: float | None = None

    @field_validator("customer_number", mode="before")
    @classmethod
    def _customer_number(cls, raw: Any) -> str:
        text = "" if raw is None else str(raw).strip()
        if not text:
            raise ValueError("customer number not found")
        return text

    @field_validator("reference_month", mode="before")
    @classmethod
    def _reference_month(cls, raw: Any) -> str:
        text = normalize_reference_month(raw)
        if not text:
            raise ValueError("reference month not found")
        return text

    @field_validator("electric_energy", mode="before")
    @classmethod
    def _electric_energy_present(cls, raw: Any) -> Any:
        if raw is None:
            raise ValueError("electric energy data missing")
        return raw

    @field_validator("electric_energy")
    @classmethod
    def _electric_energy_quantity(cls, item: EnergyItem) -> EnergyItem:
        if item.quantity == 0:
            raise ValueError("electric energy quantity is missing or zero")
        return item

    @field_validator("sceee_energy", "compensated_energy", mode="before")
    @classmethod
    def _optional_item(cls, raw: Any) -> Any:
        if raw is None or raw == {} or raw == "":
            return None
        return raw

    @field_validator("public_lighting_contrib", mode="before")
    @classmethod
    def _public_lighting(cls, raw: Any) -> float | None:
        if raw is None or raw == "":
            return None
        return parse_number(raw)

    @classmethod
    def from_llm_payload(cls, payload: Any) -> "BillExtraction":
        """Validate a decoded JSON object using the camelCase keys of the prompt."""
        if not isinstance(payload, dict):
            raise TypeError(f"Expected a JSON object, got {type(payload).__name__}")
        return cls.model_validate({
            "customer_number": payload.get("customerNumber"),
            "reference_month": payload.get("referenceMonth"),
            "electric_energy": payload.get("electricEnergy"),
            "sceee_energy": payload.get("sceeeEnergy"),
            "compensated_energy": payload.get("compensatedEnergy"),
            "public_lighting_contrib": payload.get("publicLightingContrib"),
        })
