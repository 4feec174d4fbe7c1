"""常量定义：集中维护状态码与分页等通用取值。"""

HTTP_STATUS_OK = 200
HTTP_STATUS_BAD_REQUEST = 400
HTTP_STATUS_NOT_FOUND = 404
HTTP_STATUS_CONFLICT = 409
HTTP_STATUS_BAD_GATEWAY = 502
HTTP_STATUS_SERVICE_UNAVAILABLE = 503

# 签名直链令牌的用途标识
OBJECT_TOKEN_PURPOSE = "object_access"

# 批量清理孤儿对象时单次处理的默认条数
DEFAULT_ORPHAN_BATCH_SIZE = 100
