from .fhir_client import FHIRClient, next_link
from .resources import FHIRValidationError, ResourceBuilder

__all__ = ["FHIRClient", "FHIRValidationError", "ResourceBuilder", "next_link"]
