"""常量定义：集中维护状态码与内置元数据字段。"""

HTTP_STATUS_BAD_REQUEST = 400
HTTP_STATUS_FORBIDDEN = 403
HTTP_STATUS_NOT_FOUND = 404
HTTP_STATUS_CONFLICT = 409
HTTP_STATUS_INTERNAL_SERVER_ERROR = 500

# 内置元数据 schema 与字段（schema, element, qualifier）
DC_SCHEMA = "dc"
DC_SCHEMA_NAMESPACE = "http://dublincore.org/documents/dcmi-terms/"
GROUP_TITLE_FIELD = (DC_SCHEMA, "title", None)
GROUP_DESCRIPTION_FIELD = (DC_SCHEMA, "description", None)
DEFAULT_METADATA_FIELDS = (GROUP_TITLE_FIELD, GROUP_DESCRIPTION_FIELD)

# 系统保留用户组，初始化时创建且不可删除
ANONYMOUS_GROUP = "Anonymous"
ADMIN_GROUP = "Administrator"
PERMANENT_GROUPS = (ANONYMOUS_GROUP, ADMIN_GROUP)

# find_all 在未指定元数据排序字段时允许使用的列
GROUP_SORT_COLUMNS = ("name", "id")
