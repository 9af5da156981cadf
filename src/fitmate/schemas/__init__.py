from .base import BaseSchema, TimestampSchema, IDSchema, BaseResponseSchema, MessageResponse
from .enums import Role, ClassStatus
