from pydantic import BaseModel


class AppHealthOK(BaseModel):
    status: str
    app: str
    version: str
