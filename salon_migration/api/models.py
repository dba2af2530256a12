"""Pydantic models for API requests and responses."""

from typing import Any, Dict, List, Optional
from pydantic import BaseModel, Field
from enum import Enum


class FileEncodingEnum(str, Enum):
    TEXT = "text"
    BASE64 = "base64"


class MergeStrategyEnum(str, Enum):
    MESCLAR = "mesclar"
    SUBSTITUIR = "substituir"
    MANTER_AMBOS = "manter_ambos"


# Request Models
class UploadedFile(BaseModel):
    name: str
    content: str
    encoding: FileEncodingEnum = FileEncodingEnum.TEXT


class ImportOptionsModel(BaseModel):
    ignorar_registros_com_erro: bool = True
    completar_campos_vazios: bool = False
    mesclar_duplicatas: bool = False
    pular_validacoes_nao_criticas: bool = False


class ImportCreate(BaseModel):
    files: List[UploadedFile]
    options: Optional[ImportOptionsModel] = None
    selected: Optional[List[str]] = None
    entity_overrides: Dict[str, str] = Field(default_factory=dict)


class ConfirmRequest(BaseModel):
    strategy: Optional[MergeStrategyEnum] = None
    force: bool = False


class ClientEditsRequest(BaseModel):
    """Corrections keyed by client id."""
    edits: Dict[str, Dict[str, Any]]


class MarkForUpdateRequest(BaseModel):
    client_ids: List[str]


# Response Models
class SessionResponse(BaseModel):
    id: str
    status: str
    options: Dict[str, Any]
    strategy: Optional[str] = None
    files: List[Dict[str, Any]] = Field(default_factory=list)
    outcomes: List[Dict[str, Any]] = Field(default_factory=list)
    datasets: Dict[str, Any] = Field(default_factory=dict)
    validation: Optional[Dict[str, Any]] = None
    progress: Optional[Dict[str, Any]] = None
    result: Optional[Dict[str, Any]] = None


class IncompleteClientResponse(BaseModel):
    id: Any
    nome: str
    telefone: Optional[str] = None
    campos_faltando: List[str] = Field(default_factory=list)


class WriteResultItem(BaseModel):
    client_id: str
    success: bool
    error: Optional[str] = None


class WriteResultResponse(BaseModel):
    total: int
    succeeded: int
    failed: int
    results: List[WriteResultItem]
