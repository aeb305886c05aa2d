"""常量定义：集中维护状态码、认证类型与文件节点的保留值。"""

HTTP_STATUS_OK = 200
HTTP_STATUS_BAD_REQUEST = 400
HTTP_STATUS_UNAUTHORIZED = 401
HTTP_STATUS_NOT_FOUND = 404
HTTP_STATUS_CONFLICT = 409
HTTP_STATUS_INTERNAL_SERVER_ERROR = 500

ACCESS_TOKEN_TYPE = "bearer"

# 文件夹节点的 mime_type 保留值
FOLDER_MIME_TYPE = "folder"

# 存储变更事件
STORAGE_CHANGED_EVENT = "storage.changed"
STORAGE_EVENT_CHANNEL_PREFIX = "drive:storage:"
