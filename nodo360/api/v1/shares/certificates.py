from fastapi import APIRouter, Depends

from nodo360.core.deps import AuthorizationService
from nodo360.core.ratelimit import RateLimit
from nodo360.services.shares.certificates import CertificateService

router = APIRouter(
    prefix="/certificates",
    tags=["Certificates"],
    dependencies=[Depends(RateLimit("api"))],
)


@router.get("")
async def get_my_certificates(
    service: CertificateService = Depends(CertificateService),
    authorization: AuthorizationService = Depends(AuthorizationService),
):
    user = await authorization.get_current_user()
    return await service.get_my_certificates_async(user)


@router.get("/{certificate_number}")
async def verify_certificate(
    certificate_number: str,
    service: CertificateService = Depends(CertificateService),
):
    return await service.verify_async(certificate_number)
