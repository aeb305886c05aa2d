"""存储用量响应模型。"""

from pydantic import BaseModel

from app.packages.drive.api.v1.schemas.common import ResponseEnvelope


class StorageUsageData(BaseModel):
    used: int
    total: int
    percentage: int


StorageUsageResponse = ResponseEnvelope[StorageUsageData]
