"""
Servidor Web Flask do FactoryFlow
=================================
API REST para usuários, materiais, produtos, pedidos, painel e exportações
"""

from flask import Flask, Response, jsonify, request, session as cookie_session
from flask_cors import CORS
from werkzeug.exceptions import HTTPException
import logging
import socket

from factoryflow.errors import FactoryFlowError, ValidationError
from factoryflow.exports import export
from factoryflow.models import Material, Order, Product, User
from factoryflow.services import (
    AuthService, DashboardService, MaterialService, OrderService, ProductService, UserService
)
from factoryflow.session import Session
from factoryflow.store import Backend

logger = logging.getLogger(__name__)

# Coleções expostas em /api/store (acesso direto ao armazenamento, só admin)
STORE_MODELS = {
    'users': User,
    'materials': Material,
    'products': Product,
    'orders': Order,
}


def json_object() -> dict:
    """Corpo JSON da requisição; precisa ser um objeto"""
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ValidationError("Corpo da requisição deve ser um objeto JSON")
    return data


def public_user(user: User) -> dict:
    """Registro do usuário sem a senha, para as telas comuns"""
    record = user.to_record()
    record.pop('password', None)
    return record


class WebServer:
    """Servidor web Flask com a API do FactoryFlow"""

    def __init__(self, backend: Backend, secret_key: str, port: int = 4000, host: str = '0.0.0.0'):
        """
        Inicializa o servidor web

        Args:
            backend: Persistência (LocalBackend ou RemoteBackend)
            secret_key: Chave que assina o cookie de sessão
            port: Porta para o servidor (padrão: 4000)
            host: Interface de escuta (padrão: todas)
        """
        self.backend = backend
        self.port = port
        self.host = host
        self.app = Flask(__name__)
        self.app.secret_key = secret_key
        CORS(self.app, supports_credentials=True)

        self.auth = AuthService(backend)
        self.users = UserService(backend)
        self.materials = MaterialService(backend)
        self.products = ProductService(backend)
        self.orders = OrderService(backend)
        self.dashboard = DashboardService(backend)

        self._setup_error_handlers()
        self._setup_routes()

    def current_session(self) -> Session:
        """Sessão da requisição, reconstruída a partir do cookie assinado"""
        user_id = cookie_session.get('user_id')
        if not user_id:
            return Session.anonymous()
        user = self.backend.users.get(user_id)
        if user is None:
            # Usuário excluído depois do login
            cookie_session.pop('user_id', None)
            return Session.anonymous()
        return Session.for_user(user)

    def _setup_error_handlers(self):
        @self.app.errorhandler(FactoryFlowError)
        def handle_app_error(e):
            if e.status >= 500:
                logger.error(f"Erro em {request.method} {request.path}: {e.message}")
            return jsonify({'success': False, 'error': e.message}), e.status

        @self.app.errorhandler(Exception)
        def handle_unexpected(e):
            if isinstance(e, HTTPException):
                return jsonify({'success': False, 'error': e.description}), e.code
            logger.error(f"Erro inesperado em {request.method} {request.path}: {e}", exc_info=e)
            return jsonify({'success': False, 'error': 'Erro interno do servidor'}), 500

    def _setup_routes(self):
        """Configura as rotas da API"""
        app = self.app

        def list_args():
            return {
                'query': request.args.get('q'),
                'sort_by': request.args.get('sort'),
                'order': request.args.get('order'),
            }

        # ---------- Saúde ----------

        @app.route('/api/health', methods=['GET'])
        def health():
            self.backend.ping()
            return jsonify({'success': True, 'status': 'ok'})

        # ---------- Autenticação ----------

        @app.route('/api/auth/login', methods=['POST'])
        def login():
            data = json_object()
            email = data.get('email') or ''
            password = data.get('password') or ''
            if not isinstance(email, str) or not isinstance(password, str):
                raise ValidationError("E-mail e senha devem ser texto")
            user = self.auth.authenticate(email, password)
            if user is None:
                return jsonify({'success': False, 'error': 'E-mail ou senha inválidos'}), 401
            cookie_session['user_id'] = user.id
            return jsonify({'success': True, 'user': public_user(user)})

        @app.route('/api/auth/logout', methods=['POST'])
        def logout():
            cookie_session.pop('user_id', None)
            return jsonify({'success': True})

        @app.route('/api/auth/signup', methods=['POST'])
        def signup():
            user = self.auth.signup(request.get_json(silent=True))
            cookie_session['user_id'] = user.id
            return jsonify({'success': True, 'user': public_user(user)}), 201

        @app.route('/api/auth/me', methods=['GET'])
        def me():
            user = self.current_session().require_authenticated()
            return jsonify({'success': True, 'user': public_user(user)})

        # ---------- Usuários (admin) ----------

        @app.route('/api/users', methods=['GET'])
        def list_users():
            users = self.users.list(self.current_session())
            return jsonify({'success': True, 'users': [public_user(u) for u in users]})

        @app.route('/api/users', methods=['POST'])
        def create_user():
            user = self.users.create(self.current_session(), request.get_json(silent=True))
            return jsonify({'success': True, 'user': public_user(user)}), 201

        @app.route('/api/users/<user_id>', methods=['PUT'])
        def update_user(user_id):
            user = self.users.update(self.current_session(), user_id, request.get_json(silent=True))
            return jsonify({'success': True, 'user': public_user(user)})

        @app.route('/api/users/<user_id>', methods=['DELETE'])
        def delete_user(user_id):
            self.users.delete(self.current_session(), user_id)
            return jsonify({'success': True})

        # ---------- Materiais ----------

        @app.route('/api/materials', methods=['GET'])
        def list_materials():
            materials = self.materials.list(self.current_session(), **list_args())
            return jsonify({'success': True, 'materials': [m.to_record() for m in materials]})

        @app.route('/api/materials', methods=['POST'])
        def create_material():
            material = self.materials.create(self.current_session(), request.get_json(silent=True))
            return jsonify({'success': True, 'material': material.to_record()}), 201

        @app.route('/api/materials/<material_id>', methods=['PUT'])
        def update_material(material_id):
            material = self.materials.update(self.current_session(), material_id, request.get_json(silent=True))
            return jsonify({'success': True, 'material': material.to_record()})

        @app.route('/api/materials/<material_id>', methods=['DELETE'])
        def delete_material(material_id):
            self.materials.delete(self.current_session(), material_id)
            return jsonify({'success': True})

        # ---------- Produtos ----------

        @app.route('/api/products', methods=['GET'])
        def list_products():
            products = self.products.list(self.current_session(), **list_args())
            return jsonify({'success': True, 'products': [p.to_record() for p in products]})

        @app.route('/api/products', methods=['POST'])
        def create_product():
            product = self.products.create(self.current_session(), request.get_json(silent=True))
            return jsonify({'success': True, 'product': product.to_record()}), 201

        @app.route('/api/products/<product_id>', methods=['PUT'])
        def update_product(product_id):
            product = self.products.update(self.current_session(), product_id, request.get_json(silent=True))
            return jsonify({'success': True, 'product': product.to_record()})

        @app.route('/api/products/<product_id>', methods=['DELETE'])
        def delete_product(product_id):
            self.products.delete(self.current_session(), product_id)
            return jsonify({'success': True})

        @app.route('/api/products/<product_id>/cost', methods=['GET'])
        def product_cost(product_id):
            cost = self.products.cost(self.current_session(), product_id)
            return jsonify({'success': True, 'productId': product_id, 'cost': cost})

        # ---------- Pedidos ----------

        @app.route('/api/orders', methods=['GET'])
        def list_orders():
            orders = self.orders.list(self.current_session(), **list_args())
            return jsonify({'success': True, 'orders': [o.to_record() for o in orders]})

        @app.route('/api/orders', methods=['POST'])
        def create_order():
            order = self.orders.create(self.current_session(), request.get_json(silent=True))
            return jsonify({'success': True, 'order': order.to_record()}), 201

        @app.route('/api/orders/quote', methods=['POST'])
        def quote_order():
            quote = self.orders.quote(self.current_session(), request.get_json(silent=True))
            return jsonify({'success': True, **quote})

        @app.route('/api/orders/<order_id>', methods=['PUT'])
        def update_order(order_id):
            order = self.orders.update(self.current_session(), order_id, request.get_json(silent=True))
            return jsonify({'success': True, 'order': order.to_record()})

        @app.route('/api/orders/<order_id>', methods=['DELETE'])
        def delete_order(order_id):
            self.orders.delete(self.current_session(), order_id)
            return jsonify({'success': True})

        @app.route('/api/orders/<order_id>/advance', methods=['POST'])
        def advance_order(order_id):
            order = self.orders.advance(self.current_session(), order_id)
            return jsonify({'success': True, 'order': order.to_record()})

        # ---------- Painel ----------

        @app.route('/api/dashboard', methods=['GET'])
        def dashboard():
            stats = self.dashboard.stats(self.current_session())
            return jsonify({'success': True, 'stats': stats})

        # ---------- Exportação ----------

        @app.route('/api/export/<entity>.<fmt>', methods=['GET'])
        def export_file(entity, fmt):
            self.current_session().require_authenticated()
            result = export(self.backend, entity, fmt)
            logger.info(f"Exportação gerada: {result['filename']}")
            return Response(
                result['content'],
                mimetype=result['mimetype'],
                headers={'Content-Disposition': f'attachment; filename="{result["filename"]}"'},
            )

        # ---------- Armazenamento direto (usado por RemoteBackend) ----------

        def store_for(collection):
            if collection not in STORE_MODELS:
                raise ValidationError(f"Coleção desconhecida: {collection}")
            self.current_session().require_admin()
            return getattr(self.backend, collection), STORE_MODELS[collection]

        @app.route('/api/store/<collection>', methods=['GET'])
        def store_list(collection):
            store, _ = store_for(collection)
            return jsonify({'success': True, 'items': [e.to_record() for e in store.list()]})

        @app.route('/api/store/<collection>', methods=['POST'])
        def store_create(collection):
            store, model = store_for(collection)
            entity = store.create(model.from_record(json_object()))
            return jsonify({'success': True, 'item': entity.to_record()}), 201

        @app.route('/api/store/<collection>/<entity_id>', methods=['GET'])
        def store_get(collection, entity_id):
            store, _ = store_for(collection)
            entity = store.get(entity_id)
            if entity is None:
                raise store.not_found(entity_id)
            return jsonify({'success': True, 'item': entity.to_record()})

        @app.route('/api/store/<collection>/<entity_id>', methods=['PUT'])
        def store_update(collection, entity_id):
            store, model = store_for(collection)
            entity = store.update(entity_id, model.from_record(json_object()))
            return jsonify({'success': True, 'item': entity.to_record()})

        @app.route('/api/store/<collection>/<entity_id>', methods=['DELETE'])
        def store_delete(collection, entity_id):
            store, _ = store_for(collection)
            store.delete(entity_id)
            return jsonify({'success': True})

    def get_local_ip(self) -> str:
        """Retorna o IP local da máquina"""
        try:
            # Conectar a um endereço externo para descobrir o IP local
            s = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
            s.connect(("8.8.8.8", 80))
            local_ip = s.getsockname()[0]
            s.close()
            return local_ip
        except OSError:
            return "127.0.0.1"

    def run(self, debug: bool = False):
        """
        Inicia o servidor Flask

        Args:
            debug: Modo debug (padrão: False)
        """
        local_ip = self.get_local_ip()

        print("=" * 60)
        print("🏭 FACTORYFLOW - SERVIDOR INICIADO")
        print("=" * 60)
        print(f"💻 Acesso Local:  http://localhost:{self.port}")
        print(f"🌍 Acesso Rede:   http://{local_ip}:{self.port}")
        print(f"🩺 Saúde:         http://localhost:{self.port}/api/health")
        print("=" * 60)

        self.app.run(
            host=self.host,
            port=self.port,
            debug=debug,
            use_reloader=False
        )


def start_server(backend: Backend, secret_key: str, port: int = 4000, host: str = '0.0.0.0'):
    """
    Função helper para configurar e iniciar o servidor

    Args:
        backend: Persistência já verificada
        secret_key: Chave do cookie de sessão
        port: Porta do servidor
        host: Interface de escuta
    """
    print(f"🔧 Configurando servidor Flask...")
    print(f"   - Persistência: {backend!r}")
    print(f"   - Porta: {port}")

    server = WebServer(backend, secret_key, port, host)
    print(f"✅ Servidor Flask configurado")
    print(f"🚀 Iniciando servidor na porta {port}...")
    server.run()
    return server
