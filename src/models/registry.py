"""
Job, client and technician records.

These cross every I/O boundary (document analysis output, the JSON config
store, the HTTP API), so they are Pydantic models. Field aliases keep the
French keys used by the ERP and by the extraction schema.
"""

from pydantic import BaseModel, ConfigDict, Field


class JobRecord(BaseModel):
    """Structured fields of one construction work order."""

    model_config = ConfigDict(populate_by_name=True)

    reference_code: str | None = Field(default=None, alias="num_bon_travaux")
    address_1: str | None = Field(default=None, alias="adresse_1")
    address_2: str | None = Field(default=None, alias="adresse_2")
    address_3: str | None = Field(default=None, alias="adresse_3")
    contact_name: str | None = Field(default=None, alias="gardien_nom")
    contact_phone: str | None = Field(default=None, alias="gardien_tel")
    contact_email: str | None = Field(default=None, alias="gardien_email")
    client_name: str | None = Field(default=None, alias="nom_client")
    delay_text: str | None = Field(default=None, alias="delai_intervention")
    intervention_date: str | None = Field(default=None, alias="date_intervention")
    work_description: str | None = Field(default=None, alias="descriptif_travaux")
    # Derived by the scheduler, "DD/MM/YYYY HHhMM"
    appointment: str | None = Field(default=None, alias="rdv")

    @property
    def address(self) -> str:
        parts = [self.address_1, self.address_2, self.address_3]
        return ", ".join(p.strip() for p in parts if p and p.strip())


class Client(BaseModel):
    """ERP client registry entry."""

    model_config = ConfigDict(populate_by_name=True)

    id: str
    name: str = Field(alias="nom")  # As printed on the work orders
    erp_code: str = Field(alias="codeClient")  # e.g. 411DRA038
    deal_type: str = Field(alias="typeAffaire")  # e.g. O3-0
    price_schedule: str | None = Field(default=None, alias="bpu")


class Technician(BaseModel):
    """Installer whose calendar is scheduled against."""

    model_config = ConfigDict(populate_by_name=True)

    id: str
    name: str = Field(alias="nom")
    company: str = Field(default="", alias="entreprise")
    phone: str = Field(default="", alias="telephone")
    specialty: str = Field(default="", alias="specialite")
    payroll_code: str = Field(default="", alias="codeSalarie")
    deal_type: str | None = Field(default=None, alias="type")
    # MS Graph user id or principal name; no fetch without it
    calendar_user: str | None = None

    @property
    def has_calendar(self) -> bool:
        return bool(self.calendar_user and self.calendar_user.strip())


class StorageConfig(BaseModel):
    """Shared configuration document."""

    model_config = ConfigDict(populate_by_name=True)

    webhook_url: str = ""
    clients: list[Client] = []
    technicians: list[Technician] = Field(default=[], alias="poseurs")

    def find_technician(self, technician_id: str) -> Technician | None:
        return next((t for t in self.technicians if t.id == technician_id), None)
