"""
Pydantic schemas for request records (rentals, calibrations, maintenance)
"""

from datetime import datetime
from typing import Optional, List

from pydantic import BaseModel, ConfigDict, Field, model_validator

from ..database.types import as_utc
from .enums import RequestStatus
from .activity import ItemRead


class RequestCreateBase(BaseModel):
    """Fields common to every request kind"""
    item_serial: str = Field(..., min_length=1, description="Serial number of the item")
    customer_id: Optional[str] = Field(None, description="Optional customer")
    notes: Optional[str] = None
    auto_approve: Optional[bool] = Field(
        None,
        description="Admin only. Defaults to true for rentals, false otherwise"
    )


class RentalCreate(RequestCreateBase):
    start_date: datetime
    end_date: Optional[datetime] = Field(None, description="Agreed return date")
    po_number: Optional[str] = Field(None, max_length=100)
    do_number: Optional[str] = Field(None, max_length=100)
    renter_name: Optional[str] = None
    renter_phone: Optional[str] = None
    renter_address: Optional[str] = None
    initial_condition: Optional[str] = None

    @model_validator(mode="after")
    def validate_dates(self):
        if self.end_date and as_utc(self.end_date) < as_utc(self.start_date):
            raise ValueError("end_date cannot be before start_date")
        return self


class CalibrationCreate(RequestCreateBase):
    calibration_date: Optional[datetime] = None
    fax: Optional[str] = Field(None, max_length=50)


class MaintenanceCreate(RequestCreateBase):
    start_date: Optional[datetime] = None


class RentalUpdate(BaseModel):
    """Detail changes on an open rental"""
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    po_number: Optional[str] = Field(None, max_length=100)
    do_number: Optional[str] = Field(None, max_length=100)
    notes: Optional[str] = None


class CalibrationUpdate(BaseModel):
    calibration_date: Optional[datetime] = None
    valid_until: Optional[datetime] = None
    fax: Optional[str] = Field(None, max_length=50)
    notes: Optional[str] = None


class MaintenanceUpdate(BaseModel):
    start_date: Optional[datetime] = None
    notes: Optional[str] = None


class GasEntryInput(BaseModel):
    gas_type: str
    gas_concentration: str
    gas_balance: Optional[str] = None
    gas_batch_number: Optional[str] = None


class SensorTestInput(BaseModel):
    test_sensor: str
    test_span: Optional[str] = None
    test_result: str = Field(..., pattern="^(Pass|Fail)$")


class CertificateInput(BaseModel):
    """Certificate data captured by the calibration completion form"""
    certificate_number: Optional[str] = None
    instrument_name: Optional[str] = None
    approved_by: Optional[str] = None
    gas_entries: List[GasEntryInput] = Field(default_factory=list)
    test_entries: List[SensorTestInput] = Field(default_factory=list)


class ServiceReportInput(BaseModel):
    report_number: Optional[str] = None
    reason_for_return: Optional[str] = None
    findings: Optional[str] = None
    action_taken: Optional[str] = None
    parts_used: Optional[str] = None
    technician_name: Optional[str] = None


class TechnicalReportInput(BaseModel):
    csr_number: Optional[str] = None
    problem_description: Optional[str] = None
    root_cause: Optional[str] = None
    corrective_action: Optional[str] = None
    recommendations: Optional[str] = None
    prepared_by: Optional[str] = None


class CompletionDetails(BaseModel):
    """
    Kind-specific completion artifacts.

    Only the fields relevant to the record's kind are read; the rest are
    ignored.
    """
    return_condition: Optional[str] = None
    calibration_date: Optional[datetime] = None
    valid_until: Optional[datetime] = None
    certificate: Optional[CertificateInput] = None
    service_report: Optional[ServiceReportInput] = None
    technical_report: Optional[TechnicalReportInput] = None


class StatusChangeRequest(CompletionDetails):
    """Body of a status transition call"""
    status: RequestStatus
    notes: Optional[str] = Field(None, description="Status log note; a default is used when empty")


class StatusLogRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    status: RequestStatus
    notes: Optional[str] = None
    user_id: str
    created_at: datetime


class RequestReadBase(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    item_serial: str
    user_id: str
    customer_id: Optional[str] = None
    status: RequestStatus
    notes: Optional[str] = None
    created_at: datetime
    updated_at: datetime
    item: Optional[ItemRead] = None
    status_logs: List[StatusLogRead] = Field(default_factory=list)


class RentalRead(RequestReadBase):
    start_date: datetime
    end_date: Optional[datetime] = None
    return_date: Optional[datetime] = None
    po_number: Optional[str] = None
    do_number: Optional[str] = None
    renter_name: Optional[str] = None
    initial_condition: Optional[str] = None
    return_condition: Optional[str] = None


class GasEntryRead(GasEntryInput):
    model_config = ConfigDict(from_attributes=True)


class SensorTestRead(SensorTestInput):
    model_config = ConfigDict(from_attributes=True)


class CertificateRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    certificate_number: Optional[str] = None
    manufacturer: Optional[str] = None
    instrument_name: Optional[str] = None
    model_number: Optional[str] = None
    configuration: Optional[str] = None
    approved_by: Optional[str] = None
    gas_entries: List[GasEntryRead] = Field(default_factory=list)
    test_entries: List[SensorTestRead] = Field(default_factory=list)


class CalibrationRead(RequestReadBase):
    calibration_date: Optional[datetime] = None
    valid_until: Optional[datetime] = None
    certificate: Optional[CertificateRead] = None


class ServiceReportRead(ServiceReportInput):
    model_config = ConfigDict(from_attributes=True)


class TechnicalReportRead(TechnicalReportInput):
    model_config = ConfigDict(from_attributes=True)


class MaintenanceRead(RequestReadBase):
    start_date: datetime
    end_date: Optional[datetime] = None
    service_report: Optional[ServiceReportRead] = None
    technical_report: Optional[TechnicalReportRead] = None


class CertificateData(BaseModel):
    """Everything a certificate renderer needs for one completed calibration"""
    calibration_id: str
    certificate_number: Optional[str] = None
    serial_number: str
    manufacturer: Optional[str] = None
    instrument_name: Optional[str] = None
    model_number: Optional[str] = None
    configuration: Optional[str] = None
    approved_by: Optional[str] = None
    calibration_date: Optional[datetime] = None
    valid_until: Optional[datetime] = None
    fax: Optional[str] = None
    customer_name: Optional[str] = None
    customer_address: Optional[str] = None
    customer_phone: Optional[str] = None
    gas_entries: List[GasEntryRead] = Field(default_factory=list)
    test_entries: List[SensorTestRead] = Field(default_factory=list)
