"""Row schema of the ACNC charity register datastore resource."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, field_validator

_YES = frozenset({"y", "yes", "true", "1"})


class AcncCharity(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    abn: str = Field(alias="ABN")
    legal_name: str = Field(alias="Charity_Legal_Name")
    other_names: str | None = Field(default=None, alias="Other_Organisation_Names")
    address_line_1: str | None = Field(default=None, alias="Address_Line_1")
    address_line_2: str | None = Field(default=None, alias="Address_Line_2")
    address_line_3: str | None = Field(default=None, alias="Address_Line_3")
    town_city: str | None = Field(default=None, alias="Town_City")
    state: str | None = Field(default=None, alias="State")
    postcode: str | None = Field(default=None, alias="Postcode")
    website: str | None = Field(default=None, alias="Charity_Website")
    charity_size: str | None = Field(default=None, alias="Charity_Size")
    youth: bool = Field(default=False, alias="Youth")
    children: bool = Field(default=False, alias="Children")
    aboriginal_or_tsi: bool = Field(default=False, alias="Aboriginal_or_TSI")

    @field_validator("abn", "postcode", mode="before")
    @classmethod
    def _stringify(cls, value: object) -> object:
        if isinstance(value, int | float):
            return str(int(value))
        return value

    @field_validator("youth", "children", "aboriginal_or_tsi", mode="before")
    @classmethod
    def _flag(cls, value: object) -> bool:
        if isinstance(value, bool):
            return value
        if value is None:
            return False
        return str(value).strip().casefold() in _YES

    @property
    def street_address(self) -> str | None:
        parts = [
            part.strip()
            for part in (self.address_line_1, self.address_line_2, self.address_line_3)
            if part and part.strip()
        ]
        return ", ".join(parts) or None
