# models/user.py
from __future__ import annotations
from db import db
from sqlalchemy.sql import func


class User(db.Model):
    __tablename__ = "users"

    id            = db.Column(db.Integer, primary_key=True, autoincrement=True)
    name          = db.Column(db.String(120), nullable=True)
    email         = db.Column(db.String(254), nullable=False, unique=True, index=True)
    password_hash = db.Column(db.String(255), nullable=False)

    created_at    = db.Column(db.DateTime, server_default=func.now(), nullable=False)
    updated_at    = db.Column(db.DateTime, server_default=func.now(), onupdate=func.now(), nullable=False)

    def to_profile(self) -> dict:
        # password hash never leaves the model
        return {"name": self.name, "email": self.email}

    def __repr__(self) -> str:
        return f"<User {self.id} {self.email}>"
