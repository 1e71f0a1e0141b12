from .dsedatacenter import DseDatacenter

__all__ = ["DseDatacenter"]
