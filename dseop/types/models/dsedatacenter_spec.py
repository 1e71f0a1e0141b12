from typing import Any, Dict, List, Optional
from dseop.types.base import BaseModel


class DseRack(BaseModel):
    """A named failure domain of the datacenter."""

    name: str
    zone: Optional[str]


class DseStorageClaim(BaseModel):
    """Persistent storage requested for every DSE node."""

    storage_class_name: Optional[str]
    size: str


class DseDatacenterSpec(BaseModel):
    """DseDatacenter CRD spec"""

    cluster_name: str
    size: int
    parked: bool
    racks: List[DseRack]
    image: Optional[str]
    config_builder_image: Optional[str]
    config: Dict[str, Any]
    resources: Optional[Dict[str, Any]]
    storage_claim: Optional[DseStorageClaim]
