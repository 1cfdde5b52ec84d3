from pydantic import BaseModel
from enum import Enum


class ImageBucket(str, Enum):
    CURATION_IMAGES = "curation-images"
    PROFILE_IMAGES = "profile-images"


class ImageKind(str, Enum):
    ITEM = "item"
    COVER = "cover"
    AVATAR = "avatar"


# which kinds of image each bucket accepts
BUCKET_KINDS = {
    ImageBucket.CURATION_IMAGES: {ImageKind.ITEM, ImageKind.COVER},
    ImageBucket.PROFILE_IMAGES: {ImageKind.AVATAR, ImageKind.COVER},
}


class UploadResponse(BaseModel):
    bucket: ImageBucket
    path: str
    public_url: str
