from opsdash.models.orders import (  # noqa: F401
    CollaboratorKpi,
    Order,
    OrderStatus,
    Pendency,
    PendencyStatus,
    UserDocumentLimit,
)
