from sqlmodel import SQLModel, Field as SQLField
from pydantic import BaseModel, ConfigDict, Field

DEFAULT_BLOG_IMAGE = "https://images.unsplash.com/photo-1493238792000-8113da705763?w=800"


class Record(BaseModel):
    """Base for persisted records.

    Wire and on-disk names are camelCase; Python attributes are
    snake_case. Unknown keys found in older files are kept so a round
    trip through the store never loses data.
    """
    model_config = ConfigDict(populate_by_name=True, protected_namespaces=(), extra="allow")

    id: int

    def to_json(self) -> dict:
        return self.model_dump(by_alias=True, mode="json")


class Vehicle(Record):
    dealer_id: str | None = Field(default=None, alias="dealerId")
    make: str
    model: str
    year: int
    price: int | float
    mileage: str = "N/A"
    transmission: str = "Automatic"
    fuel: str = "Petrol"
    engine: str = "N/A"
    color: str = "N/A"
    condition: str = "Good"
    doors: int = 4
    seats: int = 5
    category: str = "Used"
    featured: bool = False
    description: str = ""
    images: list[str] = Field(default_factory=list)
    features: list[str] = Field(default_factory=list)
    created_at: str | None = Field(default=None, alias="createdAt")


class BlogPost(Record):
    title: str
    excerpt: str
    full_content: str = Field(default="", alias="fullContent")
    image: str = DEFAULT_BLOG_IMAGE
    date: str | None = None
    read_time: str = Field(default="5 min", alias="readTime")
    author: str = "DirkL"
    category: str = "General"
    tags: list[str] = Field(default_factory=list)


class Dealer(Record):
    name: str
    email: str
    phone: str
    location: str = "N/A"
    description: str = ""
    logo: str | None = None
    banner: str | None = None
    status: str = "active"
    created_at: str | None = Field(default=None, alias="createdAt")


class LoginRequest(BaseModel):
    password: str | None = None


class ContactMessage(BaseModel):
    name: str | None = None
    email: str | None = None
    phone: str | None = None
    subject: str | None = None
    message: str | None = None


# Backing table for SqlRecordStore: one row per collection.
class StoredCollection(SQLModel, table=True):
    __tablename__ = "collections"
    kind: str = SQLField(primary_key=True)
    schema_version: int = 1
    payload: str = "[]"  # JSON array of records
    updated_at: str | None = None  # ISO8601
