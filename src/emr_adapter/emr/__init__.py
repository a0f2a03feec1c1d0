from .base_emr_client import BaseEMRClient
from .rest_client import OpenMRSRestClient

__all__ = ["BaseEMRClient", "OpenMRSRestClient"]
