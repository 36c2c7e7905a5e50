"""
Erros de domínio.

Os serviços lançam estes erros; os routers (ou os handlers em main.py)
traduzem para HTTP.
"""


class GestaoError(Exception):
    """Base de todos os erros da aplicação."""

    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(GestaoError):
    """Entrada inválida (valor, número de parcelas, telefone...)."""

    status_code = 400


class NotFoundError(GestaoError):
    """Cliente, débito, pagamento ou produto inexistente."""

    status_code = 404


class PersistenceError(GestaoError):
    """Falha ao gravar no banco. A operação inteira foi desfeita."""

    status_code = 500


class DeliveryError(GestaoError):
    """Falha ao entregar mensagem pelo WhatsApp (status não-2xx ou erro de rede)."""

    status_code = 502
