from datetime import datetime, timedelta, timezone

import pytest
from pydantic import ValidationError

from seva.schemas.payment_schemas import DonateRequest
from seva.schemas.puja_schemas import CreatePujaOrderRequest, PujaCustomer, PujaDetails


def _customer(**kw):
    data = {"name": "Radha", "email": "donor@example.com", "phone": "+919876543210"}
    data.update(kw)
    return data


def test_customer_phone_format():
    assert PujaCustomer(**_customer()).phone == "+919876543210"
    for phone in ("9876543210", "+91987654321", "+1 9876543210", "+9198765432100"):
        with pytest.raises(ValidationError):
            PujaCustomer(**_customer(phone=phone))


def test_customer_name_is_trimmed():
    assert PujaCustomer(**_customer(name="  Radha  ")).name == "Radha"
    with pytest.raises(ValidationError):
        PujaCustomer(**_customer(name=" R "))


def test_details_lead_time():
    later = datetime.now(timezone.utc) + timedelta(hours=73)
    assert PujaDetails(gotra="Kashyap", sankalpam="For health", preferredDate=later).preferred_date == later

    naive_soon = datetime.now(timezone.utc).replace(tzinfo=None) + timedelta(hours=71)
    with pytest.raises(ValidationError):
        PujaDetails(gotra="Kashyap", sankalpam="For health", preferredDate=naive_soon)


def test_details_blank_optionals_become_none():
    details = PujaDetails(gotra="Kashyap", sankalpam="For health", preferredDate="", namesToInclude="  ")
    assert details.preferred_date is None
    assert details.names_to_include is None


def test_details_minimum_lengths():
    with pytest.raises(ValidationError):
        PujaDetails(gotra="K", sankalpam="For health")
    with pytest.raises(ValidationError):
        PujaDetails(gotra="Kashyap", sankalpam="Ok")


def test_order_defaults():
    order = CreatePujaOrderRequest(customer=_customer(), pujaDetails={"gotra": "Kashyap", "sankalpam": "For health"})
    assert order.amount == 2100
    assert order.currency == "INR"
    with pytest.raises(ValidationError):
        CreatePujaOrderRequest(customer=_customer(), pujaDetails={"gotra": "Kashyap", "sankalpam": "x" * 5}, amount=0)


def test_donate_request_cow_needs_id():
    assert DonateRequest(amount=10, type="ashram").cow_id is None
    assert DonateRequest(amount=10, cowId="cow-1").type.value == "cow"
    with pytest.raises(ValidationError):
        DonateRequest(amount=10)
    with pytest.raises(ValidationError):
        DonateRequest(amount=0, type="ashram")
