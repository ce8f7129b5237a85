"""Display labels used by the metrics engine and its export helpers.

Labels are plain lookup tables keyed by locale.  Unknown locales fall back to
English and unknown error tags fall back to their raw value, so no lookup in
this module ever raises.
"""

from __future__ import annotations

DEFAULT_LOCALE = "en"

MONTH_ABBREVIATIONS: dict[str, tuple[str, ...]] = {
    "en": ("Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec"),
    "pt_BR": ("Jan", "Fev", "Mar", "Abr", "Mai", "Jun", "Jul", "Ago", "Set", "Out", "Nov", "Dez"),
}

# Indexed by datetime.weekday(): Monday == 0
WEEKDAY_NAMES: dict[str, tuple[str, ...]] = {
    "en": ("Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday"),
    "pt_BR": (
        "Segunda-feira",
        "Terça-feira",
        "Quarta-feira",
        "Quinta-feira",
        "Sexta-feira",
        "Sábado",
        "Domingo",
    ),
}

WEEK_LABEL: dict[str, str] = {
    "en": "Week {number}",
    "pt_BR": "Semana {number}",
}

PERIOD_LABELS: dict[str, dict[str, str]] = {
    "en": {
        "day": "Today",
        "week": "This Week",
        "month": "This Month",
        "quarter": "This Quarter",
        "year": "This Year",
        "custom": "Custom Period",
    },
    "pt_BR": {
        "day": "Hoje",
        "week": "Esta Semana",
        "month": "Este Mês",
        "quarter": "Este Trimestre",
        "year": "Este Ano",
        "custom": "Período Personalizado",
    },
}

ERROR_TYPE_LABELS: dict[str, str] = {
    "nao_e_erro": "Não é erro",
    "falta_de_dados": "Falta de dados",
    "apostila": "Apostila",
    "erro_em_data": "Erro em data",
    "nome_separado": "Nome separado",
    "texto_sem_traduzir": "Texto sem traduzir",
    "nome_incorreto": "Nome incorreto",
    "texto_duplicado": "Texto duplicado",
    "erro_em_crc": "Erro em CRC",
    "nome_traduzido": "Nome traduzido",
    "falta_parte_documento": "Falta parte do documento",
    "erro_digitacao": "Erro de digitação",
    "sem_assinatura_tradutor": "Sem assinatura do tradutor",
    "nome_junto": "Nome junto",
    "traducao_incompleta": "Tradução incompleta",
    "titulo_incorreto": "Título incorreto",
    "trecho_sem_traduzir": "Trecho sem traduzir",
    "matricula_incorreta": "Matrícula incorreta",
    "espacamento": "Espaçamento",
    "sem_cabecalho": "Sem cabeçalho",
    "solicitacao_do_cliente": "Solicitação do Cliente",
    "ordem_dos_nomes": "Ordem dos nomes",
    "sexo_divergente": "Sexo divergente",
    "rg_divergente": "RG divergente",
}


def _locale(locale: str | None) -> str:
    return locale if locale in MONTH_ABBREVIATIONS else DEFAULT_LOCALE


def month_abbreviation(month: int, locale: str | None = None) -> str:
    return MONTH_ABBREVIATIONS[_locale(locale)][month - 1]


def weekday_name(weekday: int, locale: str | None = None) -> str:
    return WEEKDAY_NAMES[_locale(locale)][weekday]


def week_label(number: int, locale: str | None = None) -> str:
    return WEEK_LABEL[_locale(locale)].format(number=number)


def period_label(selector: str, locale: str | None = None) -> str:
    labels = PERIOD_LABELS[_locale(locale)]
    return labels.get(selector, labels["custom"])


def error_type_label(error_type: str | None, labels: dict[str, str] | None = None) -> str:
    """Human label for a pendency error tag; unknown tags pass through unchanged."""
    if not error_type:
        return ""
    table = ERROR_TYPE_LABELS if labels is None else labels
    return table.get(error_type, error_type)


INDICATOR_LABELS: dict[str, dict[str, str]] = {
    "en": {
        "total_documents": "Total Documents",
        "attributed_documents": "Attributed Documents",
        "in_progress_documents": "In Progress",
        "delivered_documents": "Delivered Documents",
        "urgent_documents": "Urgent Documents",
        "urgency_rate": "Urgency Rate",
        "pendencies": "Pendencies",
        "pendency_rate": "Pendency Rate",
        "not_error_rate": "Not-an-error Rate",
        "real_error_rate": "Real Error Rate",
        "delayed_documents": "Delayed Documents",
        "delay_rate": "Delay Rate",
        "on_time_rate": "On-time Delivery Rate",
    },
    "pt_BR": {
        "total_documents": "Total de Documentos",
        "attributed_documents": "Documentos Atribuídos",
        "in_progress_documents": "Em Andamento",
        "delivered_documents": "Documentos Entregues",
        "urgent_documents": "Documentos Urgentes",
        "urgency_rate": "Taxa de Urgência",
        "pendencies": "Pendências",
        "pendency_rate": "Taxa de Pendências",
        "not_error_rate": "Taxa de Não é Erro",
        "real_error_rate": "Taxa de Erros Reais",
        "delayed_documents": "Documentos Atrasados",
        "delay_rate": "Taxa de Atraso",
        "on_time_rate": "Entregas no Prazo",
    },
}


def indicator_label(key: str, locale: str | None = None) -> str:
    return INDICATOR_LABELS[_locale(locale)].get(key, key)
