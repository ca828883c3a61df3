# database.py
# Responsável pela conexão e operações com o banco de dados SQLite

import sqlite3
import os
import logging
import threading
from pathlib import Path
from datetime import datetime
from typing import Any, List, Optional, Tuple, Union, Mapping

# Parameter type accepted by sqlite3 (positional tuple or named mapping)
Params = Union[Tuple[Any, ...], Mapping[str, Any]]

logger = logging.getLogger(__name__)

# Administrador padrão criado no primeiro uso
DEFAULT_ADMIN = {
    "id": "00000000-0000-0000-0000-000000000001",
    "email": "admin@company.com",
    "name": "Admin",
    "surname": "User",
    "phone": "+370 600 00000",
    "role": "admin",
    "password": "admin123",
}

SCHEMA = (
    """
    CREATE TABLE IF NOT EXISTS users (
        id TEXT PRIMARY KEY,
        email TEXT NOT NULL UNIQUE,
        name TEXT NOT NULL,
        surname TEXT NOT NULL,
        phone TEXT NOT NULL,
        role TEXT NOT NULL,
        password TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS materials (
        id TEXT PRIMARY KEY,
        name TEXT NOT NULL,
        cost REAL NOT NULL,
        unit TEXT NOT NULL,
        stock REAL NOT NULL,
        created_at TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS products (
        id TEXT PRIMARY KEY,
        name TEXT NOT NULL,
        materials TEXT NOT NULL,   -- JSON [{materialId, quantity}]
        created_at TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS orders (
        id TEXT PRIMARY KEY,
        order_number TEXT NOT NULL,
        products TEXT NOT NULL,    -- JSON [{productId, quantity}]
        status TEXT NOT NULL,
        total_cost REAL NOT NULL,
        leftovers TEXT NOT NULL,   -- JSON [{materialId, quantity}]
        created_at TEXT NOT NULL,
        completed_at TEXT
    )
    """,
)


class Database:
    def __init__(self, db_path: str):
        self.db_path = db_path
        # check_same_thread=False permite uso pelas threads do servidor Flask
        # timeout define quanto esperar em locks antes de falhar
        self.conn = sqlite3.connect(self.db_path, timeout=10, check_same_thread=False)
        self.conn.row_factory = sqlite3.Row
        # Uma única conexão compartilhada; operações serializadas pelo lock
        self._lock = threading.RLock()
        c = self.conn.cursor()
        c.execute("PRAGMA foreign_keys=ON")
        if self.db_path != ":memory:":
            c.execute("PRAGMA journal_mode=WAL")  # leitores não bloqueiam escritor
        c.execute("PRAGMA synchronous=NORMAL")
        c.execute("PRAGMA busy_timeout=5000")
        self.conn.commit()
        self._init_db()

    def _init_db(self):
        cur = self.conn.cursor()
        for statement in SCHEMA:
            cur.execute(statement)
        self.conn.commit()
        # Cria usuário admin padrão se a tabela estiver vazia
        count = cur.execute("SELECT COUNT(*) FROM users").fetchone()[0]
        if count == 0:
            cur.execute(
                "INSERT INTO users(id, email, name, surname, phone, role, password) "
                "VALUES (:id, :email, :name, :surname, :phone, :role, :password)",
                DEFAULT_ADMIN,
            )
            self.conn.commit()
            logger.info("Usuário administrador padrão criado (%s)", DEFAULT_ADMIN["email"])

    def execute(self, sql: str, params: Params = ()) -> sqlite3.Cursor:
        with self._lock:
            cur = self.conn.cursor()
            try:
                cur.execute(sql, params)
                self.conn.commit()
            except sqlite3.Error:
                self.conn.rollback()
                raise
            return cur

    def query(self, sql: str, params: Params = ()) -> List[sqlite3.Row]:
        try:
            with self._lock:
                cur = self.conn.cursor()
                cur.execute(sql, params)
                return cur.fetchall()
        except sqlite3.DatabaseError as e:
            if "malformed" in str(e).lower() or "corrupt" in str(e).lower():
                raise sqlite3.DatabaseError(f"Banco de dados corrompido: {e}. Restaure um backup.")
            raise

    def query_one(self, sql: str, params: Params = ()) -> Optional[sqlite3.Row]:
        rows = self.query(sql, params)
        return rows[0] if rows else None

    def close(self) -> None:
        self.conn.close()

    def verify_integrity(self) -> Tuple[bool, str]:
        """Verifica a integridade do banco de dados"""
        try:
            with self._lock:
                result = self.conn.execute("PRAGMA integrity_check").fetchone()
            if result and result[0] == "ok":
                return True, "Banco de dados íntegro"
            return False, f"Problemas detectados: {result[0] if result else 'desconhecido'}"
        except sqlite3.DatabaseError as e:
            return False, f"Erro ao verificar: {str(e)}"

    def create_backup(self, backup_dir: Optional[str] = None) -> str:
        """Cria um backup do banco de dados e retorna o caminho do arquivo"""
        if backup_dir is None:
            backup_dir = str(Path(self.db_path).parent / "backups")
        os.makedirs(backup_dir, exist_ok=True)

        timestamp = datetime.now().strftime('%Y%m%d_%H%M%S')
        backup_path = os.path.join(backup_dir, f"backup_{timestamp}.db")

        # Usa backup API do SQLite para garantir consistência
        backup_conn = sqlite3.connect(backup_path)
        with backup_conn:
            self.conn.backup(backup_conn)
        backup_conn.close()
        logger.info("Backup criado em %s", backup_path)
        return backup_path
