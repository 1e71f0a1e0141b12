from .dsedatacenter_spec import (
    DseDatacenterSpecSchema,
    DseRackSchema,
    DseStorageClaimSchema,
)

__all__ = [
    "DseDatacenterSpecSchema",
    "DseRackSchema",
    "DseStorageClaimSchema",
]
