"""Input records consumed by the metrics engine."""

from __future__ import annotations

import enum
from dataclasses import dataclass
from datetime import UTC, datetime


class WorkStatus(enum.Enum):
    pending = "pending"
    in_progress = "in_progress"
    delivered = "delivered"

    @classmethod
    def coerce(cls, value: object) -> WorkStatus:
        if isinstance(value, WorkStatus):
            return value
        raw = getattr(value, "value", value)
        try:
            return cls(str(raw))
        except ValueError:
            return cls.pending


OPEN_STATUSES = frozenset({WorkStatus.pending, WorkStatus.in_progress})


class PendencyStatus(enum.Enum):
    pending = "pending"
    resolved = "resolved"


class ErrorType(enum.Enum):
    nao_e_erro = "nao_e_erro"
    falta_de_dados = "falta_de_dados"
    apostila = "apostila"
    erro_em_data = "erro_em_data"
    nome_separado = "nome_separado"
    texto_sem_traduzir = "texto_sem_traduzir"
    nome_incorreto = "nome_incorreto"
    texto_duplicado = "texto_duplicado"
    erro_em_crc = "erro_em_crc"
    nome_traduzido = "nome_traduzido"
    falta_parte_documento = "falta_parte_documento"
    erro_digitacao = "erro_digitacao"
    sem_assinatura_tradutor = "sem_assinatura_tradutor"
    nome_junto = "nome_junto"
    traducao_incompleta = "traducao_incompleta"
    titulo_incorreto = "titulo_incorreto"
    trecho_sem_traduzir = "trecho_sem_traduzir"
    matricula_incorreta = "matricula_incorreta"
    espacamento = "espacamento"
    sem_cabecalho = "sem_cabecalho"
    solicitacao_do_cliente = "solicitacao_do_cliente"
    ordem_dos_nomes = "ordem_dos_nomes"
    sexo_divergente = "sexo_divergente"
    rg_divergente = "rg_divergente"


NOT_AN_ERROR = ErrorType.nao_e_erro.value


class ReferenceTimestamp(enum.Enum):
    """Which instant of a work record places it on the timeline."""

    created_at = "created_at"
    attributed_at = "attributed_at"
    delivered_at = "delivered_at"
    deadline = "deadline"


def ensure_aware(value: datetime | None) -> datetime | None:
    """Treat naive datetimes as UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


@dataclass(frozen=True)
class WorkRecord:
    id: str
    deadline: datetime
    document_count: int = 0
    urgent_document_count: int = 0
    status: WorkStatus = WorkStatus.pending
    worker_id: str | None = None
    order_number: str | None = None
    created_at: datetime | None = None
    attributed_at: datetime | None = None
    delivered_at: datetime | None = None

    def __post_init__(self) -> None:
        documents = max(int(self.document_count or 0), 0)
        urgent = min(max(int(self.urgent_document_count or 0), 0), documents)
        object.__setattr__(self, "document_count", documents)
        object.__setattr__(self, "urgent_document_count", urgent)
        object.__setattr__(self, "status", WorkStatus.coerce(self.status))
        if not self.order_number:
            object.__setattr__(self, "order_number", str(self.id))
        for name in ("deadline", "created_at", "attributed_at", "delivered_at"):
            object.__setattr__(self, name, ensure_aware(getattr(self, name)))

    def instant(self, reference: ReferenceTimestamp) -> datetime | None:
        return getattr(self, reference.value)

    @property
    def is_delivered(self) -> bool:
        return self.status == WorkStatus.delivered

    @property
    def has_duration_anomaly(self) -> bool:
        return (
            self.attributed_at is not None
            and self.delivered_at is not None
            and self.delivered_at < self.attributed_at
        )


@dataclass(frozen=True)
class PendencyRecord:
    id: str
    error_type: str
    created_at: datetime | None
    order_id: str | None = None
    status: str = PendencyStatus.pending.value

    def __post_init__(self) -> None:
        raw = getattr(self.error_type, "value", self.error_type)
        object.__setattr__(self, "error_type", str(raw or ""))
        object.__setattr__(self, "created_at", ensure_aware(self.created_at))

    @property
    def is_real_error(self) -> bool:
        return self.error_type != NOT_AN_ERROR
