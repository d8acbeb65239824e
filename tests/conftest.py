"""
Pytest configuration and shared fixtures.
"""

import sys
from datetime import date, datetime
from pathlib import Path

import pytest

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from fixtures.calendars import FakeCalendarBackend  # noqa: E402
from models.registry import Client, JobRecord, StorageConfig, Technician  # noqa: E402

MONDAY = date(2025, 11, 3)


@pytest.fixture
def monday() -> date:
    """Monday 3 November 2025."""
    return MONDAY


@pytest.fixture
def monday_morning() -> datetime:
    return datetime(2025, 11, 3, 9, 0)


@pytest.fixture
def storage_config() -> StorageConfig:
    """Registry with two calendar-enabled technicians and one without."""
    return StorageConfig(
        webhook_url="https://erp.example.test/webhook/orders",
        clients=[
            Client(id="c-1", name="OPH DE DRANCY", erp_code="411DRA038", deal_type="O3-0"),
            Client(id="c-2", name="VILOGIA", erp_code="411VIL001", deal_type="O1-A"),
        ],
        technicians=[
            Technician(
                id="t-1",
                name="Equipe A",
                company="SAMDB",
                payroll_code="SAM-A1",
                calendar_user="equipe.a@samdb.test",
            ),
            Technician(
                id="t-2",
                name="Equipe B",
                company="SAMDB",
                payroll_code="SAM-B1",
                calendar_user="equipe.b@samdb.test",
            ),
            Technician(id="t-3", name="Sous-traitant", company="Menuiserie Dupont"),
        ],
    )


@pytest.fixture
def sample_job() -> JobRecord:
    """Work order as returned by document analysis."""
    return JobRecord(
        reference_code="BT-2025/0042",
        client_name="OPH DE DRANCY",
        address_1="12 rue de la République",
        address_3="93700 Drancy",
        contact_name="M. Martin",
        contact_phone="06 12 34 56 78",
        delay_text="Avant le 03/11/2025",
        work_description="Remplacement fenêtre PVC",
    )


@pytest.fixture
def backend() -> FakeCalendarBackend:
    return FakeCalendarBackend()
