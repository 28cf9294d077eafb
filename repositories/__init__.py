from .audit import SqlAuditLogRepository  # noqa: F401
from .carts import SqlCartRepository  # noqa: F401
from .orders import SqlOrderRepository  # noqa: F401
from .products import SqlProductRepository  # noqa: F401
from .sequences import SqlOrderSequenceRepository  # noqa: F401
from .users import SqlUserRepository  # noqa: F401
