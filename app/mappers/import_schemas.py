"""
app/mappers/import_schemas.py

Canonical field dictionaries for the patient and procedure-production imports.

Field order matters: a header is assigned to the first field declaring a
phrase it contains, so more specific phrases come before generic ones
("codigo logradouro" before "logradouro").
"""

from __future__ import annotations

import enum
from dataclasses import dataclass

from app.domain.bulk_import import ImportType

STATUS_SCHEDULED = "Agendado"
STATUS_IN_PRODUCTION = "Em Produção"
STATUS_MOLD_CONSULTATION = "Consulta/Molde"
STATUS_DELIVERY_SCHEDULED = "Agendado Entrega"
STATUS_FINALIZED = "Finalizado"
STATUS_CANCELLED = "Cancelado"
STATUS_IN_SERVICE = "Em Atendimento"

PRODUCTION_STATUSES: tuple[str, ...] = (
    STATUS_SCHEDULED,
    STATUS_IN_PRODUCTION,
    STATUS_MOLD_CONSULTATION,
    STATUS_DELIVERY_SCHEDULED,
    STATUS_FINALIZED,
    STATUS_CANCELLED,
    STATUS_IN_SERVICE,
)

PROCEDURE_CODE_WIDTH = 10
CNS_MIN_DIGITS = 15


class FieldKind(str, enum.Enum):
    TEXT = "text"
    IDENTIFIER = "identifier"
    CODE = "code"
    DATE = "date"
    BOOLEAN = "boolean"
    STATUS = "status"


@dataclass(frozen=True)
class HeaderField:
    name: str
    kind: FieldKind
    phrases: tuple[str, ...]
    label: str
    identity: bool = False
    default: str | None = None
    pad_width: int | None = None


@dataclass(frozen=True)
class HeaderSchema:
    import_type: ImportType
    fields: tuple[HeaderField, ...]
    template_sheet: str
    template_filename: str
    sample_row: tuple[str, ...] = ()

    @property
    def field_names(self) -> tuple[str, ...]:
        return tuple(item.name for item in self.fields)

    @property
    def identity_fields(self) -> tuple[str, ...]:
        return tuple(item.name for item in self.fields if item.identity)

    @property
    def template_headers(self) -> tuple[str, ...]:
        return tuple(item.label for item in self.fields)

    def field(self, name: str) -> HeaderField:
        for item in self.fields:
            if item.name == name:
                return item
        raise KeyError(name)

    def match(self, normalized_header: str) -> HeaderField | None:
        """
        Return the first field with a phrase contained in the normalized header.
        """

        if not normalized_header:
            return None
        for item in self.fields:
            if any(phrase in normalized_header for phrase in item.phrases):
                return item
        return None


PATIENT_SCHEMA = HeaderSchema(
    import_type=ImportType.PATIENT,
    fields=(
        HeaderField("cns", FieldKind.IDENTIFIER, ("cartao sus", "cns"), "Cartão SUS", identity=True),
        HeaderField("name", FieldKind.TEXT, ("nome",), "Nome Completo", identity=True),
        HeaderField("birth_date", FieldKind.DATE, ("nascimento",), "Data de Nascimento"),
        HeaderField("gender", FieldKind.TEXT, ("sexo",), "Sexo"),
        HeaderField("nationality", FieldKind.TEXT, ("nacionalidade",), "Nacionalidade"),
        HeaderField("race", FieldKind.TEXT, ("raca",), "Raça"),
        HeaderField("ethnicity", FieldKind.TEXT, ("etnia",), "Etnia"),
        HeaderField("zip_code", FieldKind.TEXT, ("cep",), "CEP"),
        HeaderField("city", FieldKind.TEXT, ("municipio",), "Município"),
        HeaderField("neighborhood", FieldKind.TEXT, ("bairro",), "Bairro"),
        HeaderField("street_code", FieldKind.TEXT, ("codigo logradouro",), "Código Logradouro"),
        HeaderField("street_type", FieldKind.TEXT, ("tipo logradouro",), "Tipo Logradouro"),
        HeaderField("street", FieldKind.TEXT, ("logradouro",), "Logradouro"),
        HeaderField("number", FieldKind.TEXT, ("numero",), "Número"),
        HeaderField("complement", FieldKind.TEXT, ("complemento",), "Complemento"),
        HeaderField("phone", FieldKind.TEXT, ("telefone",), "Telefone"),
        HeaderField("email", FieldKind.TEXT, ("e mail", "email"), "E-mail"),
    ),
    template_sheet="Modelo",
    template_filename="modelo_importacao_pacientes.xlsx",
)

PRODUCTION_SCHEMA = HeaderSchema(
    import_type=ImportType.PRODUCTION,
    fields=(
        HeaderField("cns", FieldKind.IDENTIFIER, ("cns", "cartao sus"), "CNS_PACIENTE", identity=True),
        HeaderField("name", FieldKind.TEXT, ("nome",), "NOME_PACIENTE"),
        HeaderField(
            "procedure_code",
            FieldKind.CODE,
            ("codigo procedimento", "cod procedimento", "procedimento"),
            "CODIGO_PROCEDIMENTO",
            identity=True,
            pad_width=PROCEDURE_CODE_WIDTH,
        ),
        HeaderField("date_service", FieldKind.DATE, ("data atendimento",), "DATA_ATENDIMENTO"),
        HeaderField(
            "date_service_fallback",
            FieldKind.DATE,
            ("data consulta molde", "consulta molde"),
            "DATA_CONSULTA_MOLDE",
        ),
        HeaderField("status", FieldKind.STATUS, ("status", "situacao"), "STATUS", default=STATUS_SCHEDULED),
        HeaderField("date_delivery", FieldKind.DATE, ("data entrega",), "DATA_ENTREGA"),
        HeaderField("date_cancellation", FieldKind.DATE, ("data cancelamento",), "DATA_CANCELAMENTO"),
        HeaderField("date_scheduling", FieldKind.DATE, ("data agendamento",), "DATA_AGENDAMENTO"),
        HeaderField("sia_processed", FieldKind.BOOLEAN, ("processado sia", "processado"), "PROCESSADO_SIA"),
    ),
    template_sheet="Modelo Importação",
    template_filename="modelo_importacao_bpai.xlsx",
    sample_row=(
        "700000000000000",
        "João Silva",
        "0301010072",
        "01/01/2024 10:00",
        "",
        STATUS_SCHEDULED,
        "",
        "",
        "",
        "NÃO",
    ),
)

_SCHEMAS: dict[ImportType, HeaderSchema] = {
    ImportType.PATIENT: PATIENT_SCHEMA,
    ImportType.PRODUCTION: PRODUCTION_SCHEMA,
}


def get_schema(import_type: ImportType) -> HeaderSchema:
    return _SCHEMAS[ImportType(import_type)]
