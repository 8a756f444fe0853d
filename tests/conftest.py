import json
import os
import socket
import sys
import urllib.request
from datetime import date
from pathlib import Path

import pytest


REPO_ROOT = Path(__file__).resolve().parents[1]
SRC = REPO_ROOT / "src"
FIXTURES = Path(__file__).resolve().parent / "fixtures"
ROWS_PATH = FIXTURES / "sf_assessor_rows.json"

# Inside the filing window; 24 months back is 2023-02-15.
TODAY = date(2025, 2, 15)

# Prefer repo sources over any installed package.
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))


@pytest.fixture(autouse=True)
def block_network(monkeypatch):
    if os.getenv("LIVE") == "1":
        return

    real_connect = socket.socket.connect

    def guarded_connect(sock, address):
        host = address[0]
        if host not in ("127.0.0.1", "localhost"):
            raise RuntimeError("Network access blocked in tests")
        return real_connect(sock, address)

    monkeypatch.setattr(socket.socket, "connect", guarded_connect)
    monkeypatch.setattr(
        urllib.request,
        "urlopen",
        lambda *args, **kwargs: (_ for _ in ()).throw(
            RuntimeError("Network access blocked in tests")
        ),
    )


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    from sf_informal_review.config import reset_config_cache

    for name in list(os.environ):
        if name.startswith("SFIR_"):
            monkeypatch.delenv(name, raising=False)
    reset_config_cache()
    yield
    reset_config_cache()


@pytest.fixture()
def rows():
    return json.loads(ROWS_PATH.read_text(encoding="utf-8"))


@pytest.fixture()
def source(rows):
    from sf_informal_review.records import FixtureRecordSource

    return FixtureRecordSource(rows)


@pytest.fixture()
def service(source):
    from sf_informal_review.service import AppealService

    return AppealService(source, clock=lambda: TODAY)


@pytest.fixture()
def store():
    from sf_informal_review.case import CaseStateStore

    return CaseStateStore()


@pytest.fixture()
def subject():
    from sf_informal_review.models import Property, PropertyType

    return Property(
        address="1625 PACIFIC AV #7",
        parcel_id="0595023",
        property_type=PropertyType.CONDO,
        assessed_value=1625000.0,
        reference_value=1625000.0,
        area=1250.0,
        bedroom_count=2.0,
        bathroom_count=2.0,
        latitude=37.7946,
        longitude=-122.4215,
        zone="Pacific Heights",
    )


def make_comparable(comp_id, price, *, sale_date=date(2024, 6, 1), included=True, **extra):
    from sf_informal_review.models import Comparable

    return Comparable(
        id=comp_id,
        address=extra.pop("address", f"{comp_id.upper()} TEST ST"),
        sale_date=sale_date,
        sale_price=float(price),
        included=included,
        **extra,
    )
