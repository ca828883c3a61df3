# -*- coding: utf-8 -*-
# FactoryFlow – Gestão de Produção (Flask + SQLite)
# -------------------------------------------------
# Requisitos:
#   pip install -e .
#   # (testes)
#   pip install -e .[test]
#
# Observações:
# - API REST para usuários, materiais, produtos e pedidos.
# - Persistência local (SQLite em ./data/factoryflow.db) ou remota
#   (outro servidor FactoryFlow, via --remote ou backend.type: remote).
# - Custo de produto/pedido resolvido a partir dos preços dos materiais;
#   o custo do pedido é gravado no momento da criação/edição.
# - Login padrão: admin@company.com / admin123
#
# Como executar:
#   python FactoryFlow.py [--port 4000] [--db caminho.db] [--remote URL] [--backup]

import argparse
import sqlite3
import sys
from typing import List, Optional

from factoryflow.config import (
    get_backend_settings, get_database_path, get_secret_key, get_server_settings, load_config
)
from factoryflow.database import Database
from factoryflow.errors import BackendUnavailable
from factoryflow.logger import log_error, log_event, log_startup
from factoryflow.remote import RemoteBackend
from factoryflow.store import Backend, LocalBackend
from factoryflow.web_server import start_server


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="FactoryFlow", description="Servidor de gestão de produção")
    parser.add_argument("--port", type=int, help="Porta HTTP (padrão: PORT ou 4000)")
    parser.add_argument("--host", help="Interface de escuta (padrão: 0.0.0.0)")
    parser.add_argument("--db", help="Caminho do banco SQLite")
    parser.add_argument("--remote", metavar="URL", help="Usar outro servidor FactoryFlow como persistência")
    parser.add_argument("--backup", action="store_true", help="Criar backup do banco antes de iniciar")
    return parser.parse_args(argv)


def build_backend(args: argparse.Namespace, config: dict) -> Backend:
    settings = get_backend_settings(config)
    if args.remote or settings['type'] == 'remote':
        url = args.remote or settings['url']
        if not url:
            raise BackendUnavailable("URL do servidor remoto não configurada")
        return RemoteBackend(url, settings['email'], settings['password'], settings['timeout'])

    db_path = args.db or get_database_path(config)
    db = Database(db_path)
    if args.backup:
        backup_path = db.create_backup()
        log_event(f"💾 Backup criado: {backup_path}")
    return LocalBackend(db)


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    config = load_config()
    server = get_server_settings(config)
    port = args.port or server['port']
    host = args.host or server['host']

    try:
        backend = build_backend(args, config)
        backend.ping()
    except BackendUnavailable as e:
        log_error("❌ Persistência indisponível, encerrando", e)
        sys.exit(1)
    except (OSError, ValueError, sqlite3.Error) as e:
        log_error("❌ Falha ao abrir a persistência", e)
        sys.exit(1)

    log_startup(repr(backend))
    try:
        start_server(backend, get_secret_key(), port, host)
    finally:
        backend.close()
    return 0


if __name__ == "__main__":
    sys.exit(main())
