"""Test validation of extracted bill fields."""
import pytest
from pydantic import ValidationError
from energy_bills.models.extraction import BillExtraction, EnergyItem
from tests.factories import make_llm_payload


class TestEnergyItem:
    def test_defaults_to_zero(self):
        item = EnergyItem()
        assert item.quantity == 0.0
        assert item.value == 0.0

    def test_coerces_strings(self):
        item = EnergyItem(quantity="476", value="R$ 392,50")
        assert item.quantity == 476.0
        assert item.value == pytest.approx(392.50)

    def test_null_fields_become_zero(self):
        item = EnergyItem(quantity=None, value="")
        assert item.quantity == 0.0
        assert item.value == 0.0


class TestBillExtraction:
    def test_full_payload(self):
        extraction = BillExtraction.from_llm_payload(make_llm_payload())
        assert extraction.customer_number == "7204076116"
        assert extraction.reference_month == "SET/2024"
        assert extraction.electric_energy.quantity == 50
        assert extraction.sceee_energy.value == pytest.approx(392.50)
        assert extraction.compensated_energy.quantity == 526
        assert extraction.public_lighting_contrib == pytest.approx(23.45)

    def test_optionals_absent(self):
        payload = make_llm_payload()
        for key in ("sceeeEnergy", "compensatedEnergy", "publicLightingContrib"):
            payload.pop(key)
        extraction = BillExtraction.from_llm_payload(payload)
        assert extraction.sceee_energy is None
        assert extraction.compensated_energy is None
        assert extraction.public_lighting_contrib is None

    def test_empty_optional_object_is_absent(self):
        extraction = BillExtraction.from_llm_payload(make_llm_payload(sceeeEnergy={}, compensatedEnergy=None))
        assert extraction.sceee_energy is None
        assert extraction.compensated_energy is None

    def test_customer_number_is_trimmed_string(self):
        extraction = BillExtraction.from_llm_payload(make_llm_payload(customerNumber=7204076116))
        assert extraction.customer_number == "7204076116"

    def test_reference_month_normalised(self):
        extraction = BillExtraction.from_llm_payload(make_llm_payload(referenceMonth="09/2024"))
        assert extraction.reference_month == "SET/2024"

    @pytest.mark.parametrize("overrides,field", [
        ({"customerNumber": "  "}, "customer_number"),
        ({"customerNumber": None}, "customer_number"),
        ({"referenceMonth": ""}, "reference_month"),
        ({"electricEnergy": None}, "electric_energy"),
        ({"electricEnergy": {"quantity": 0, "value": 45.67}}, "electric_energy"),
        ({"electricEnergy": {"quantity": "abc", "value": 1}}, "electric_energy"),
        ({"publicLightingContrib": "n/a"}, "public_lighting_contrib"),
    ])
    def test_invalid_payloads(self, overrides, field):
        with pytest.raises(ValidationError) as exc_info:
            BillExtraction.from_llm_payload(make_llm_payload(**overrides))
        assert exc_info.value.errors()[0]["loc"][0] == field

    def test_non_object_payload(self):
        with pytest.raises(TypeError):
            BillExtraction.from_llm_payload(["not", "an", "object"])
