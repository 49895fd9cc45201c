from sqlalchemy.exc import OperationalError

from cardapio.core.errors import (
    CheckoutGuardError,
    PersistenceError,
    SessionNotFoundError,
    classify_error,
)


def test_domain_error_uses_its_title():
    classified = classify_error(CheckoutGuardError())

    assert classified.prefix == "[Erro]"
    assert classified.title == "Preencha os dados obrigatórios"
    assert classified.detail == "Preencha os dados obrigatórios"


def test_domain_error_with_context():
    classified = classify_error(PersistenceError("disk full"), context="criar pedido")

    assert classified.title == "Falha ao criar pedido"
    assert classified.detail == "disk full"


def test_sqlalchemy_error_is_database_category():
    error = OperationalError("INSERT INTO orders", {}, Exception("no such table: orders"))
    assert classify_error(error).prefix == "[Erro BD]"


def test_database_markers_in_message():
    error = RuntimeError('relation "orders" does not exist')
    assert classify_error(error, "carregar pedidos").prefix == "[Erro BD]"


def test_api_error_with_status_code():
    classified = classify_error(RuntimeError("Request failed with status 503"))
    assert classified.prefix == "[Erro API 503]"


def test_network_error_without_code():
    classified = classify_error(ConnectionError("network unreachable"))
    assert classified.prefix == "[Erro API ???]"


def test_unknown_error():
    classified = classify_error(ValueError("boom"))

    assert classified.prefix == "[Erro]"
    assert classified.title == "Erro inesperado"
    assert classified.to_dict()["detail"] == "boom"


def test_status_codes():
    assert SessionNotFoundError().status_code == 404
    assert CheckoutGuardError().status_code == 422
    assert PersistenceError().status_code == 502
