from pydantic import BaseModel


class SizeInfo(BaseModel):
    bytes: int
    mb: float
    formatted: str

class StorageUsageRead(BaseModel):
    used: SizeInfo
    limit: SizeInfo
    available: SizeInfo
    percentage: str

class AdminStorageRead(StorageUsageRead):
    users: int

class UploadRead(BaseModel):
    url: str
    key: str
    size: int
    type: str
    mime_type: str
