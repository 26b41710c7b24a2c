"""
Certificate data for completed calibrations.

PDF layout is left to the consumer; this only assembles and guards the
data printed on the certificate.
"""

import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..models.calibration import Calibration
from ..schemas.auth import TokenPayload
from ..schemas.enums import RequestStatus
from ..schemas.requests import CertificateData, GasEntryRead, SensorTestRead
from ..utils.errors import NotFoundError, AuthorizationError, CertificateUnavailableError

logger = logging.getLogger(__name__)


async def get_certificate_data(db: AsyncSession, calibration_id: str, actor: TokenPayload) -> CertificateData:
    """
    Certificate data of a calibration, for its owner or an admin.

    Raises CertificateUnavailableError until the calibration is COMPLETED
    with a certificate on file.
    """
    result = await db.execute(select(Calibration).where(Calibration.id == calibration_id))
    calibration = result.scalar_one_or_none()
    if calibration is None:
        raise NotFoundError(f"Calibration {calibration_id} not found")

    if not actor.is_admin and calibration.user_id != actor.user_id:
        raise AuthorizationError()

    if calibration.status != RequestStatus.COMPLETED.value:
        raise CertificateUnavailableError("Certificate is only available for completed calibrations")

    certificate = calibration.certificate
    if certificate is None:
        logger.warning(f"Certificate missing for completed calibration {calibration_id}")
        raise CertificateUnavailableError("Certificate data has not been filled in for this calibration")

    item = calibration.item
    customer = calibration.customer
    return CertificateData(
        calibration_id=calibration.id,
        certificate_number=certificate.certificate_number,
        serial_number=calibration.item_serial,
        manufacturer=certificate.manufacturer or (item.name if item else None),
        instrument_name=certificate.instrument_name,
        model_number=certificate.model_number or (item.part_number if item else None),
        configuration=certificate.configuration or (item.sensor if item else None),
        approved_by=certificate.approved_by,
        calibration_date=calibration.calibration_date,
        valid_until=calibration.valid_until,
        fax=calibration.fax,
        customer_name=customer.name if customer else None,
        customer_address=customer.address if customer else None,
        customer_phone=customer.contact_phone if customer else None,
        gas_entries=[GasEntryRead.model_validate(g) for g in certificate.gas_entries],
        test_entries=[SensorTestRead.model_validate(t) for t in certificate.test_entries],
    )
