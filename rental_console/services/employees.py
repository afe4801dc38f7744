import logging
from typing import Optional

from .. import auth, schemas
from ..errors import ValidationError
from .base import EntityService

logger = logging.getLogger(__name__)


class EmployeeService(EntityService):
    collection = "employees"
    schema = schemas.Employee

    async def find_by_email(self, email: str) -> Optional[dict]:
        with self.failure("load"):
            records = await self.store.get_all(self.collection, {"email": email})
        return records[0] if records else None

    async def before_create(self, fields: dict) -> dict:
        if await self.find_by_email(fields["email"]):
            raise ValidationError("Email already registered")
        fields["password_hash"] = auth.get_password_hash(fields.pop("password"))
        return fields

    async def authenticate(self, email: str, password: str) -> Optional[schemas.Employee]:
        record = await self.find_by_email(email)
        if not record or not record.get("passwordhash"):
            return None
        if not auth.verify_password(password, record["passwordhash"]):
            return None
        return self.build(record)
