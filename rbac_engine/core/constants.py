"""Core constants: cache key prefixes and shared literal values.

Single source of truth for cache key structure. Used by the permission
map cache and the invalidation paths of the policy admin service.
"""

# Cache key prefix for resolved permission maps (rbac:permissions:<tenant>:<user>)
CACHE_PREFIX_PERMISSION = "rbac:permissions"

# Cache key prefix for invalidation generations (rbac:generation:<kind>:...)
CACHE_PREFIX_GENERATION = "rbac:generation"

# Delimiter for composite keys
CACHE_KEY_SEP = ":"

# Delimiter between resource and action in permission codes (students:read)
PERMISSION_CODE_SEP = ":"

# Role key prefixes (system:<SLUG>, tenant:<tenant_id>:<SLUG>)
ROLE_KEY_SYSTEM = "system"
ROLE_KEY_TENANT = "tenant"
ROLE_KEY_SEP = ":"

# Value sources always available when resolving conditions
VALUE_SOURCE_USER_ID = "userId"
VALUE_SOURCE_TENANT_ID = "tenantId"

# Record field that carries the tenant for tenant-scoped filters
TENANT_FIELD = "tenantId"
