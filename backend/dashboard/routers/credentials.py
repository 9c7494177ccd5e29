from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from dashboard.db import get_db
from dashboard.schemas import (
    CredentialSetUpdate,
    CredentialSetResponse,
    CredentialTestRequest,
    CredentialTestResult,
)
from dashboard.services import credential_service

router = APIRouter(prefix="/api", tags=["credentials"])


@router.get("/projects/{project_id}/credentials", response_model=CredentialSetResponse)
def get_credentials(project_id: int, db: Session = Depends(get_db)):
    """Stored credential set with every secret field masked."""
    row = credential_service.get_credential_set(db, project_id)
    credentials = credential_service.decrypt_credentials(row.encrypted_payload) if row else {}
    return CredentialSetResponse(
        project_id=project_id,
        credentials=credential_service.mask_credentials(credentials),
        updated_at=row.updated_at if row else None,
    )


@router.put("/projects/{project_id}/credentials", response_model=CredentialSetResponse)
def save_credentials(project_id: int, data: CredentialSetUpdate, db: Session = Depends(get_db)):
    row = credential_service.save_credentials(db, project_id, data.credentials)
    return CredentialSetResponse(
        project_id=project_id,
        credentials=credential_service.mask_credentials(data.credentials),
        updated_at=row.updated_at,
    )


@router.post("/credentials/test", response_model=CredentialTestResult)
async def test_credentials(data: CredentialTestRequest):
    return await credential_service.test_credentials(data.platform, data.credentials)
