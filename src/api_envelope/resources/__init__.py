from api_envelope.resources.base import Arrayable, Resource
from api_envelope.resources.form import FormResource
from api_envelope.resources.orm import OrmResource

__all__ = ["Arrayable", "FormResource", "OrmResource", "Resource"]
