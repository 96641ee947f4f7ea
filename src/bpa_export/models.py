from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Literal

from pydantic import BaseModel, Field, field_validator

from .normalizers import digits_only, normalize_competency

BpaMode = Literal["BPA-C", "BPA-I"]
CONSOLIDATED: BpaMode = "BPA-C"
INDIVIDUALIZED: BpaMode = "BPA-I"
SUPPORTED_MODES: tuple[BpaMode, ...] = (CONSOLIDATED, INDIVIDUALIZED)


class BpaHeader(BaseModel):
    """Control header of one export file (record ``01``)."""

    competency: str = Field(min_length=1)
    responsible: str = Field(min_length=1, max_length=30)
    acronym: str = Field(default="", max_length=6)
    cnpj: str
    destination: str = Field(default="", max_length=40)
    indicator: Literal["E", "M"] = "M"
    version: str = Field(default="", max_length=10)

    @field_validator("competency")
    @classmethod
    def _check_competency(cls, value: str) -> str:
        normalized = normalize_competency(value)
        if len(normalized) != 6:
            raise ValueError("competency must normalize to AAAAMM")
        return normalized

    @field_validator("cnpj")
    @classmethod
    def _check_cnpj(cls, value: str) -> str:
        cnpj = digits_only(value)
        if len(cnpj) != 14:
            raise ValueError("cnpj must have 14 digits")
        return cnpj


def default_header(today: date | None = None) -> BpaHeader:
    reference = today or date.today()
    return BpaHeader(
        competency=reference.strftime("%Y%m"),
        responsible="SECRETARIA DE SAUDE",
        acronym="SMS",
        cnpj="11306581000100",
        destination="SECRETARIA MUNICIPAL DE SAUDE",
        indicator="M",
        version="BPA_MAG",
    )


@dataclass(frozen=True)
class BpaRecord:
    """One billable procedure occurrence.

    The common fields feed both layouts; the remaining ones are only written
    by the individualized layout.
    """

    cnes: str
    competency: str
    cbo: str
    procedure: str
    age: str = ""
    quantity: int = 1
    origin: str = "BPA"

    professional_name: str = ""
    professional_cns: str = ""
    attendance_date: str = ""
    patient_cns: str = ""
    sex: str = ""
    residence_ibge: str = ""
    cid: str = ""
    care_character: str = ""
    authorization_number: str = ""
    patient_name: str = ""
    birth_date: str = ""
    race: str = ""
    ethnicity: str = ""
    nationality: str = ""
    service: str = ""
    classification: str = ""
    team_sequence: str = ""
    team_area: str = ""
    company_cnpj: str = ""
    postal_code: str = ""
    street: str = ""
    complement: str = ""
    street_number: str = ""
    neighborhood: str = ""
    phone: str = ""
    email: str = ""

    @property
    def is_valid(self) -> bool:
        return bool(self.procedure.strip()) and self.quantity > 0

    @property
    def context_key(self) -> tuple[str, str]:
        return self.cnes, self.competency
