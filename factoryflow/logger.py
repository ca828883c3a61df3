# logger.py
# Logger e auditoria

import logging
import os
import sys
from datetime import datetime


def get_log_dir():
    """Retorna o diretório de logs (FACTORYFLOW_LOG_DIR ou ~/.factoryflow/logs)"""
    log_dir = os.getenv('FACTORYFLOW_LOG_DIR')
    if not log_dir:
        if sys.platform == 'win32' and os.getenv('LOCALAPPDATA'):
            log_dir = os.path.join(os.getenv('LOCALAPPDATA'), 'FactoryFlow', 'logs')
        else:
            log_dir = os.path.expanduser('~/.factoryflow/logs')
    os.makedirs(log_dir, exist_ok=True)
    return log_dir


LOG_DIR = get_log_dir()
LOG_PATH = os.path.join(LOG_DIR, f'factoryflow_{datetime.now().strftime("%Y%m%d")}.log')

# Arquivo diário + console
logging.basicConfig(
    filename=LOG_PATH,
    level=logging.INFO,
    format='%(asctime)s [%(levelname)s] %(name)s: %(message)s',
    datefmt='%Y-%m-%d %H:%M:%S',
    encoding='utf-8'
)

console_handler = logging.StreamHandler()
console_handler.setLevel(logging.INFO)
console_handler.setFormatter(logging.Formatter('%(asctime)s [%(levelname)s] %(message)s', '%H:%M:%S'))
logging.getLogger().addHandler(console_handler)


def log_event(msg: str):
    """Registra evento informativo"""
    logging.info(msg)


def log_error(msg: str, exc: Exception = None):
    """Registra erro com traceback opcional"""
    if exc:
        logging.error(f"{msg}: {str(exc)}", exc_info=exc)
    else:
        logging.error(msg)


def log_warning(msg: str):
    logging.warning(msg)


def log_debug(msg: str):
    logging.debug(msg)


def log_startup(backend_description: str):
    """Registra informações de inicialização do sistema"""
    logging.info("=" * 60)
    logging.info("FACTORYFLOW - SERVIDOR INICIADO")
    logging.info("=" * 60)
    logging.info(f"Versão Python: {sys.version}")
    logging.info(f"Sistema Operacional: {sys.platform}")
    logging.info(f"Persistência: {backend_description}")
    logging.info(f"Arquivo de log: {LOG_PATH}")
    logging.info("=" * 60)
