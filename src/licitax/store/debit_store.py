"""SQLite store for debits (advisory fees charged to clients)."""

import json
import sqlite3
from datetime import datetime
from decimal import Decimal
from pathlib import Path
from typing import Literal, Optional

from pydantic import BaseModel

DebitStatus = Literal["PENDENTE", "PAGO", "ENVIADO_FINANCEIRO"]
DEBIT_STATUSES: tuple[str, ...] = ("PENDENTE", "PAGO", "ENVIADO_FINANCEIRO")


class Debit(BaseModel):
    """Fee owed by a client; bid debits share the bid's protocol id."""

    id: str
    tipo: Literal["LICITACAO", "AVULSO"] = "LICITACAO"
    cliente_nome: str
    cliente_cnpj: Optional[str] = None
    descricao: str
    valor: Decimal
    data_vencimento: datetime
    data_referencia: datetime
    status: DebitStatus = "PENDENTE"
    licitacao_numero: Optional[str] = None


class DebitStore:
    """SQLite store for debits."""

    def __init__(self, db_path: str | Path = "licitax.db"):
        self._db_path = Path(db_path)
        self._ensure_schema()

    def _connection(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self._db_path)
        conn.row_factory = sqlite3.Row
        return conn

    def _ensure_schema(self) -> None:
        schema_path = Path(__file__).parent / "schema.sql"
        with self._connection() as conn:
            conn.executescript(schema_path.read_text())

    def upsert(self, debit: Debit) -> Debit:
        """Create or replace a debit."""
        data = json.dumps(debit.model_dump(mode="json"), default=str)
        with self._connection() as conn:
            conn.execute(
                """
                INSERT INTO debits (id, tipo, status, data_referencia, data)
                VALUES (?, ?, ?, ?, ?)
                ON CONFLICT(id) DO UPDATE SET
                    tipo = excluded.tipo,
                    status = excluded.status,
                    data_referencia = excluded.data_referencia,
                    data = excluded.data
                """,
                (debit.id, debit.tipo, debit.status, debit.data_referencia.isoformat(), data),
            )
            conn.commit()
        return debit

    def get(self, debit_id: str) -> Optional[Debit]:
        with self._connection() as conn:
            row = conn.execute("SELECT * FROM debits WHERE id = ?", (debit_id,)).fetchone()
        return Debit.model_validate(json.loads(row["data"])) if row else None

    def list_all(self) -> list[Debit]:
        """All debits, most recent reference date first."""
        with self._connection() as conn:
            rows = conn.execute("SELECT * FROM debits ORDER BY data_referencia DESC").fetchall()
        return [Debit.model_validate(json.loads(r["data"])) for r in rows]

    def update_status(self, debit_id: str, status: str) -> bool:
        """Set the finance status. Returns False if the debit does not exist."""
        if status not in DEBIT_STATUSES:
            raise ValueError(f"status must be one of {DEBIT_STATUSES}")
        debit = self.get(debit_id)
        if debit is None:
            return False
        self.upsert(debit.model_copy(update={"status": status}))
        return True

    def delete_pending(self, debit_id: str) -> bool:
        """Delete the debit only while still PENDENTE (bid removed before payment)."""
        with self._connection() as conn:
            cursor = conn.execute(
                "DELETE FROM debits WHERE id = ? AND status = 'PENDENTE'", (debit_id,)
            )
            conn.commit()
        return cursor.rowcount > 0
