"""文件管理 - 文件/文件夹 操作请求/响应模型。"""

from typing import Optional

from pydantic import BaseModel, Field

from app.packages.drive.api.v1.schemas.common import ResponseEnvelope


class FileNodeData(BaseModel):
    id: str
    name: str
    path: str
    size: int
    mimeType: str
    fileUrl: Optional[str] = None
    thumbnailUrl: Optional[str] = None
    ownerId: str
    parentId: Optional[str] = None
    isFolder: bool
    isStarred: bool
    isTrashed: bool
    createdAt: Optional[str] = None
    updatedAt: Optional[str] = None


class FolderCreateBody(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    parentId: Optional[str] = None


class FileRegisterBody(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    path: str = Field(..., min_length=1)
    size: int = Field(..., ge=0)
    mimeType: Optional[str] = Field(None, max_length=255)
    fileUrl: Optional[str] = None
    thumbnailUrl: Optional[str] = None
    parentId: Optional[str] = None


class FileDeleteData(BaseModel):
    deletedFile: FileNodeData


class FolderDeleteData(BaseModel):
    deletedFolder: FileNodeData
    deletedCount: int


class EmptyTrashData(BaseModel):
    deletedCount: int


FilesListResponse = ResponseEnvelope[list[FileNodeData]]
FileNodeResponse = ResponseEnvelope[FileNodeData]
FileDeleteResponse = ResponseEnvelope[FileDeleteData]
FolderDeleteResponse = ResponseEnvelope[FolderDeleteData]
EmptyTrashResponse = ResponseEnvelope[EmptyTrashData]
