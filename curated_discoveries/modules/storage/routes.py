from fastapi import APIRouter, Depends, UploadFile, File, Form
from curated_discoveries.database.supabase_client import get_supabase
from curated_discoveries.modules.storage.schemas import ImageBucket, ImageKind, UploadResponse
from curated_discoveries.modules.storage.service import StorageService
from curated_discoveries.modules.auth.schemas import AuthUser
from curated_discoveries.core.dependencies import get_current_user
from supabase import Client

router = APIRouter(prefix="/uploads", tags=["uploads"])


def get_storage_service(supabase: Client = Depends(get_supabase)) -> StorageService:
    return StorageService(supabase)


@router.post("/{bucket}", response_model=UploadResponse, status_code=201)
async def upload_image(
    bucket: ImageBucket,
    file: UploadFile = File(...),
    kind: ImageKind = Form(ImageKind.ITEM),
    current_user: AuthUser = Depends(get_current_user),
    service: StorageService = Depends(get_storage_service)
):
    """Upload an image (max 5MB by default) and get its public URL"""
    content = await file.read()
    return service.upload_image(
        bucket=bucket,
        user_id=current_user.id,
        filename=file.filename,
        content=content,
        content_type=file.content_type,
        kind=kind,
    )


@router.delete("/{bucket}/{path:path}", status_code=204)
async def delete_image(
    bucket: ImageBucket,
    path: str,
    current_user: AuthUser = Depends(get_current_user),
    service: StorageService = Depends(get_storage_service)
):
    service.delete_image(bucket, path, current_user.id)
    return None
