from __future__ import annotations

from sqlalchemy import Text
from sqlalchemy.orm import Mapped, mapped_column

from wrist_intake.core.db import Base


class Patient(Base):
    __tablename__ = "patients"

    # National identification number (DNI); natural key, opaque string.
    id: Mapped[str] = mapped_column(Text, primary_key=True)
    # FiliatoriosData serialized as JSON text.
    filiatorios_data: Mapped[str] = mapped_column(Text, nullable=False)
