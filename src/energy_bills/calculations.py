"""Derived bill metrics.

- Consumo de Energia Elétrica (kWh) = Energia Elétrica + Energia SCEEE s/ICMS
- Energia Compensada (kWh) = Energia compensada GD I
- Valor Total sem GD (R$) = Energia Elétrica + Energia SCEEE + Contrib. Ilum. Pública
- Economia GD (R$) = Energia compensada GD I (valor)

The economy keeps the sign reported on the bill; a credit may be negative.
"""
from __future__ import annotations

from .models.bill import DerivedMetrics
from .models.extraction import BillExtraction


def _money(value: float) -> float:
    return round(value, 2)


def derive_metrics(extracted: BillExtraction) -> DerivedMetrics:
    """Compute the four derived metrics. Absent optional inputs count as zero."""
    sceee = extracted.sceee_energy
    compensated = extracted.compensated_energy

    sceee_quantity = sceee.quantity if sceee is not None else 0.0
    sceee_value = sceee.value if sceee is not None else 0.0
    public_lighting = extracted.public_lighting_contrib or 0.0

    return DerivedMetrics(
        total_energy_consumption=extracted.electric_energy.quantity + sceee_quantity,
        compensated_energy_quantity=compensated.quantity if compensated is not None else 0.0,
        total_value_without_gd=_money(extracted.electric_energy.value + sceee_value + public_lighting),
        gd_economy=_money(compensated.value if compensated is not None else 0.0),
    )
