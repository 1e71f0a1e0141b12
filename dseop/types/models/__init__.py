from .dsedatacenter_spec import DseDatacenterSpec, DseRack, DseStorageClaim
from .dsedatacenter_resources import DseDatacenterResources

__all__ = [
    "DseDatacenterSpec",
    "DseRack",
    "DseStorageClaim",
    "DseDatacenterResources",
]
