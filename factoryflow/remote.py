# remote.py
# Persistência remota: outro servidor FactoryFlow acessado via HTTP (urllib)

import http.cookiejar
import json
import logging
import socket
import urllib.error
import urllib.parse
import urllib.request
from typing import Any, Dict, List, Optional, Type

from factoryflow.errors import BackendUnavailable, FactoryFlowError, Forbidden, NotFound, error_for_status
from factoryflow.models import Material, Order, Product, User
from factoryflow.store import Backend, E, EntityStore

logger = logging.getLogger(__name__)

USER_AGENT = "FactoryFlow-Remote/1.0"


class RemoteClient:
    """
    Cliente JSON para a API de armazenamento (/api/store) de um servidor remoto.

    A sessão de login fica no cookie jar; o login é feito na primeira requisição.
    """

    def __init__(self, base_url: str, email: str, password: str, timeout: float = 10.0):
        self.base_url = base_url.rstrip('/')
        self.email = email
        self.password = password
        self.timeout = timeout
        self.cookies = http.cookiejar.CookieJar()
        self.opener = urllib.request.build_opener(urllib.request.HTTPCookieProcessor(self.cookies))
        self._logged_in = False

    def _send(self, method: str, path: str, body: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        url = f"{self.base_url}{path}"
        headers = {"User-Agent": USER_AGENT, "Accept": "application/json"}
        data = None
        if body is not None:
            data = json.dumps(body).encode('utf-8')
            headers["Content-Type"] = "application/json"
        req = urllib.request.Request(url, data=data, headers=headers, method=method)

        try:
            with self.opener.open(req, timeout=self.timeout) as response:
                return json.loads(response.read().decode('utf-8'))
        except urllib.error.HTTPError as e:
            # Erro HTTP com envelope {"success": false, "error": ...}
            try:
                message = json.loads(e.read().decode('utf-8')).get('error') or str(e.reason)
            except (ValueError, AttributeError):
                message = f"Erro HTTP {e.code}: {e.reason}"
            logger.warning(f"Servidor remoto respondeu {e.code} em {method} {path}: {message}")
            raise error_for_status(e.code, message)
        except urllib.error.URLError as e:
            logger.error(f"Erro de conexão com {url}: {e.reason}")
            raise BackendUnavailable(f"Servidor remoto indisponível: {e.reason}")
        except socket.timeout:
            logger.error(f"Timeout após {self.timeout}s em {url}")
            raise BackendUnavailable(f"Tempo limite excedido ({self.timeout}s)")
        except ConnectionError as e:
            logger.error(f"Conexão encerrada por {url}: {e}")
            raise BackendUnavailable(f"Servidor remoto indisponível: {e}")
        except json.JSONDecodeError:
            raise BackendUnavailable("Resposta inválida do servidor remoto")

    def login(self) -> None:
        try:
            self._send('POST', '/api/auth/login', {'email': self.email, 'password': self.password})
        except BackendUnavailable:
            raise
        except FactoryFlowError as e:
            raise BackendUnavailable(f"Falha de login no servidor remoto: {e}")
        self._logged_in = True
        logger.info(f"Sessão aberta no servidor remoto {self.base_url} como {self.email}")

    def request(self, method: str, path: str, body: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        if not self._logged_in:
            self.login()
        return self._send(method, path, body)

    def health(self) -> Dict[str, Any]:
        return self._send('GET', '/api/health')


class RemoteEntityStore(EntityStore[E]):
    """Mesmo contrato do armazenamento local, sobre /api/store/<coleção>"""

    def __init__(self, client: RemoteClient, collection: str, model: Type[E], entity_name: str):
        self.client = client
        self.collection = collection
        self.model = model
        self.entity_name = entity_name

    def _path(self, entity_id: Optional[str] = None) -> str:
        path = f"/api/store/{self.collection}"
        if entity_id is not None:
            path += "/" + urllib.parse.quote(entity_id, safe='')
        return path

    def list(self) -> List[E]:
        data = self.client.request('GET', self._path())
        return [self.model.from_record(item) for item in data.get('items', [])]

    def get(self, entity_id: str) -> Optional[E]:
        try:
            data = self.client.request('GET', self._path(entity_id))
        except NotFound:
            return None
        return self.model.from_record(data['item'])

    def create(self, entity: E) -> E:
        data = self.client.request('POST', self._path(), entity.to_record())
        return self.model.from_record(data['item'])

    def update(self, entity_id: str, entity: E) -> E:
        data = self.client.request('PUT', self._path(entity_id), entity.to_record())
        return self.model.from_record(data['item'])

    def delete(self, entity_id: str) -> None:
        self.client.request('DELETE', self._path(entity_id))


class RemoteBackend(Backend):
    def __init__(self, base_url: str, email: str, password: str, timeout: float = 10.0):
        self.client = RemoteClient(base_url, email, password, timeout)
        self.users = RemoteEntityStore(self.client, 'users', User, 'Usuário')
        self.materials = RemoteEntityStore(self.client, 'materials', Material, 'Material')
        self.products = RemoteEntityStore(self.client, 'products', Product, 'Produto')
        self.orders = RemoteEntityStore(self.client, 'orders', Order, 'Pedido')

    def ping(self) -> None:
        data = self.client.health()
        if not data.get('success'):
            raise BackendUnavailable(data.get('error') or "Servidor remoto com falha")
        self.client.login()
        # As rotas /api/store exigem perfil admin na conta remota
        try:
            self.client.request('GET', '/api/store/users')
        except Forbidden as e:
            raise BackendUnavailable(f"Conta remota sem acesso ao armazenamento: {e}")

    def __repr__(self):
        return f"RemoteBackend({self.client.base_url})"
