from datetime import date

from pydantic import BaseModel, Field


class ServiceRequestCreate(BaseModel):
    client_name: str = Field(min_length=1, max_length=255)
    email: str = Field(min_length=3, max_length=255)
    service_type: str = Field(min_length=1, max_length=255)
    description: str = Field(min_length=1, max_length=5000)


class AssetRegistrationCreate(BaseModel):
    asset_type: str = Field(min_length=1, max_length=255)
    serial_number: str = Field(min_length=1, max_length=255)
    install_date: date
