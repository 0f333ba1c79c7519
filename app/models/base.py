from typing import Annotated, Optional

from bson import ObjectId
from pydantic import BaseModel, BeforeValidator, ConfigDict, Field

# ObjectIds travel as strings outside the database
PyObjectId = Annotated[str, BeforeValidator(lambda v: str(v) if isinstance(v, ObjectId) else v)]


class MongoBaseModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, arbitrary_types_allowed=True)

    id: Optional[PyObjectId] = Field(default=None, alias="_id")

    def to_mongo(self) -> dict:
        """Document body ready for insert_one (no _id; Mongo assigns it)."""
        return self.model_dump(exclude={"id"})

    @classmethod
    def from_mongo(cls, document: dict):
        return cls.model_validate(document)
