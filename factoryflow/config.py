# config.py
# Configurações globais e leitura de YAML

from typing import Dict, Any, Optional
import os
import secrets

import yaml

DEFAULT_PORT = 4000
DEFAULT_HOST = '0.0.0.0'
DEFAULT_TIMEOUT = 10.0


def get_app_data_directory() -> str:
    """
    Retorna o diretório de dados da aplicação.
    FACTORYFLOW_DATA_DIR tem prioridade; senão usa a pasta data/ do projeto.
    """
    app_data_dir = os.getenv('FACTORYFLOW_DATA_DIR') or os.path.join(os.path.dirname(__file__), '..', 'data')
    app_data_dir = os.path.abspath(app_data_dir)
    os.makedirs(app_data_dir, exist_ok=True)
    return app_data_dir


def get_config_path() -> str:
    return os.path.join(get_app_data_directory(), 'config.yaml')


def load_config() -> Dict[str, Any]:
    """
    Carrega as configurações do arquivo YAML.

    Returns:
        Dict[str, Any]: Dicionário com as configurações
    """
    path = get_config_path()
    if not os.path.exists(path):
        return {}
    with open(path, 'r', encoding='utf-8') as f:
        return yaml.safe_load(f) or {}


def save_config(data: Dict[str, Any]) -> None:
    """
    Salva as configurações no arquivo YAML.

    Args:
        data: Dicionário com as configurações para salvar
    """
    with open(get_config_path(), 'w', encoding='utf-8') as f:
        yaml.safe_dump(data, f, allow_unicode=True)


def get_database_path(config: Optional[Dict[str, Any]] = None) -> str:
    """Caminho do banco SQLite: configuração do usuário ou data/factoryflow.db"""
    config = load_config() if config is None else config
    db_path = config.get('database_path')
    if db_path:
        return os.path.abspath(db_path)
    return os.path.join(get_app_data_directory(), 'factoryflow.db')


def get_server_settings(config: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """host/port do servidor; a variável PORT sobrepõe o arquivo"""
    config = load_config() if config is None else config
    server = config.get('server') or {}
    port = os.getenv('PORT') or server.get('port') or DEFAULT_PORT
    return {
        'host': server.get('host') or DEFAULT_HOST,
        'port': int(port),
    }


def get_backend_settings(config: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """
    Persistência usada pelo servidor.

    type: 'local' (SQLite) ou 'remote' (outro servidor FactoryFlow via HTTP)
    """
    config = load_config() if config is None else config
    backend = config.get('backend') or {}
    backend_type = backend.get('type', 'local')
    if backend_type not in ('local', 'remote'):
        raise ValueError(f"Tipo de backend inválido: {backend_type}")
    return {
        'type': backend_type,
        'url': backend.get('url', ''),
        'email': backend.get('email', ''),
        'password': backend.get('password', ''),
        'timeout': float(backend.get('timeout', DEFAULT_TIMEOUT)),
    }


def get_secret_key() -> str:
    """Chave do cookie de sessão; gerada e salva na primeira execução"""
    config = load_config()
    key = config.get('secret_key')
    if not key:
        key = secrets.token_hex(32)
        config['secret_key'] = key
        save_config(config)
    return key
