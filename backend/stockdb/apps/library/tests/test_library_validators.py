import pytest
from pydantic import ValidationError

from stockdb.apps.library import schemas
from stockdb.utils import validators


@pytest.mark.parametrize("raw, expected", [("98765 43210", "9876543210"), ("98765-43210", "9876543210"), ("", None)])
def test_phone_number_normalised(raw, expected):
    assert validators.phone_number(raw) == expected


@pytest.mark.parametrize("raw", ["12345", "98765432101", "phone"])
def test_phone_number_rejected(raw):
    with pytest.raises(ValueError):
        validators.phone_number(raw)


def test_gst_number_uppercased_and_checked():
    assert validators.gst_number("27aapfu0939f1zv") == "27AAPFU0939F1ZV"
    with pytest.raises(ValueError):
        validators.gst_number("27AAPFU0939F1V")


def test_pin_code():
    assert validators.pin_code(" 411001 ") == "411001"
    with pytest.raises(ValueError):
        validators.pin_code("4110")


def test_vendor_schema_cleans_fields():
    vendor = schemas.VendorCreate(
        name="  Bolt Supplies ",
        contact_person="   ",
        phone="98765 43210",
        brands=["Boltex", " ", "Boltex", "Nutco"],
    )
    assert vendor.name == "Bolt Supplies"
    assert vendor.contact_person is None
    assert vendor.phone == "9876543210"
    assert vendor.brands == ["Boltex", "Nutco"]


def test_vendor_schema_requires_name():
    with pytest.raises(ValidationError):
        schemas.VendorCreate(name="  ")


def test_customer_schema_reports_bad_pin():
    with pytest.raises(ValidationError) as excinfo:
        schemas.CustomerCreate(name="Kiran Traders", pin="12")
    assert excinfo.value.errors()[0]["loc"] == ("pin",)
