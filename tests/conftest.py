"""
Pytest configuration and fixtures for the salon import tests.

Every test runs against MemoryStorage, so no backend is needed. Pacing
between batches is disabled to keep the suite fast.
"""

import pytest

from salon_migration.models.record import SourceFile
from salon_migration.models.session import ImportConfig
from salon_migration.services.schema_registry import EntityRegistry
from salon_migration.storage import MemoryStorage

CLIENTES_CSV = (
    "nome;celular;email;data_nascimento;endereco\n"
    "Ana Souza;11987654321;ana@example.com;25/12/1990;Rua A, 10\n"
    "Bruno Lima;(11) 91234-5678;;;\n"
    "Carla Dias;;carla@example.com;01/02/1985;Rua B, 20\n"
)

SALON_FILES = {
    "vendas.csv": "data;cliente;total\n10/01/2024;Ana Souza;R$ 50,00\n",
    "agenda.csv": "cliente;profissional;servico;data_hora\nAna Souza;Paula;Corte;10/01/2024 14:00\n",
    "servicos.csv": "nome;preco;duracao;categoria\nCorte;R$ 45,00;40;Cabelo\n",
    "profissionais.csv": "nome;comissao\nPaula;40\n",
    "clientes.csv": CLIENTES_CSV,
    "categorias_servicos.csv": "nome;descricao\nCabelo;Serviços de cabelo\n",
}


def many_clients_csv(count: int) -> str:
    """A clients file with ``count`` rows and no duplicate keys."""
    lines = ["nome"] + [f"Cliente {i:03d}" for i in range(1, count + 1)]
    return "\n".join(lines) + "\n"


@pytest.fixture
def storage():
    """Empty in-memory backend."""
    return MemoryStorage()


@pytest.fixture
def config():
    """Default configuration without pacing between batches."""
    return ImportConfig(batch_delay=0.0)


@pytest.fixture
def registry():
    """Registry with the built-in entity schemas."""
    return EntityRegistry()


@pytest.fixture
def clientes_file():
    """Three clients: one complete, one incomplete, one without phone."""
    return SourceFile.from_text("clientes.csv", CLIENTES_CSV)


@pytest.fixture
def salon_files():
    """One small file per supported entity, in shuffled upload order."""
    return [SourceFile.from_text(name, text) for name, text in SALON_FILES.items()]
