from fastapi import APIRouter, Body, Depends, Response
from sqlalchemy.ext.asyncio import AsyncSession
from app.database import get_db
from app.dependencies import get_provisioner
from app.errors import not_found
from app.schemas import ArtistResponse, ErrorResponse
from app.services import user_service
from app.services.provisioning_service import ProvisioningOrchestrator

router = APIRouter(prefix="/api/usuarios", tags=["usuarios"])

_ERRORS = {code: {"model": ErrorResponse} for code in (400, 404, 409, 500)}

@router.get("", response_model=list[ArtistResponse], response_model_exclude_unset=True)
async def list_users(db: AsyncSession = Depends(get_db)):
    return await user_service.get_users(db)

@router.get(
    "/{user_id}",
    response_model=ArtistResponse,
    response_model_exclude_unset=True,
    responses=_ERRORS,
)
async def get_user(user_id: int, db: AsyncSession = Depends(get_db)):
    user = await user_service.get_user(db, user_id)
    if not user:
        raise not_found("User not found.", f"/usuarios/{user_id}")
    return user

@router.post(
    "",
    status_code=201,
    response_model=ArtistResponse,
    response_model_exclude_unset=True,
    responses=_ERRORS,
)
async def create_user(
    response: Response,
    payload: dict = Body(...),
    provisioner: ProvisioningOrchestrator = Depends(get_provisioner),
):
    user = await provisioner.provision(payload)
    response.headers["Location"] = f"{router.prefix}/{user['id']}"
    return user
