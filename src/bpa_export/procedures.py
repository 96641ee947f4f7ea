from __future__ import annotations

from types import MappingProxyType
from typing import Literal

from .normalizers import digits_only, normalize_key

ProcedureContext = Literal["physician", "nursing", "technician"]

PHYSICIAN_PROCEDURES = MappingProxyType(
    {
        "ELETROCARDIOGRAMA": "0211020036",
        "CONSULTA MEDICA EM ATENCAO ESPECIALIZADA": "0301010072",
        "ATENDIMENTO MEDICO EM UNIDADE DE PRONTO ATENDIMENTO": "0301060096",
        "EXERESE DE TUMOR DE PELE E ANEXOS / CISTO SEBACEO / LIPOMA": "0401010074",
        "TESTE RAPIDO PARA DETECCAO DE INFECCAO PELO HIV": "0214010058",
        "TESTE RADIO PARA SIFILIS": "0214010074",
        "TESTE RAPIDO PARA SIFILIS": "0214010074",
        "DRENAGEM DE ABSCESSO": "0401010031",
        "RETIRADA DE CORPO ESTRANHO DA CAVIDADE AUDITIVA E NASAL": "0404010300",
        "TAMPONAMENTO NASAL ANTERIOR E/OU POSTERIOR": "0404010342",
        "REMOCAO DE CERUMEN DE CONDUTO AUDITIVO EXTERNO UNI / BILATERAL": "0404010270",
        "RETIRADA DE CORPO ESTRANHO SUBCUTANEO": "0401010112",
        "INCISAO E DRENAGEM DE ABSCESSO": "0401010104",
        "EXCISAO DE LESAO E/OU SUTURA DE FERIMENTO DA PELE ANEXOS E MUCOSA": "0401010058",
        "CURATIVO GRAU II C/ OU S/ DEBRIDAMENTO": "0401010015",
        "ATENDIMENTO DE URGENCIA EM ATENCAO ESPECIALIZADA": "0301060061",
        "CONSULTA MEDICA EM SAUDE DO TRABALHADOR": "0301010056",
        "PROVA DO LACO": "0202020509",
        "DEBRIDAMENTO DE ULCERA / NECROSE": "0415040043",
        "SUTURA": "0401010058",
    }
)

NURSING_PROCEDURES = MappingProxyType(
    {
        "ADMINISTRACAO DE MEDICAMENTOS NA ATENCAO ESPECIALIZADA": "0301100012",
        "ATIVIDADE EDUCATIVA / ORIENTACAO EM GRUPO NA ATENCAO ESPECIALIZADA": "0101010028",
        "CONSULTA/ATENDIMENTO DOMICILIAR NA ATENCAO ESPECIALIZADA": "0301010161",
        "CURATIVO GRAU II C/ OU S/ DEBRIDAMENTO": "0401010015",
        "CONSULTA DE PROFISSIONAIS DE NIVEL SUPERIOR NA ATENCAO ESPECIALIZADA "
        "(EXCETO MEDICO)": "0301010048",
        "TESTE RAPIDO PARA SIFILIS": "0214010074",
        "TESTE RAPIDO PARA DETECCAO DE INFECCAO PELO HIV": "0214010058",
        "TESTE NAO TREPONEMICO P/ DETECCAO DE SIFILIS": "0202031110",
        "TESTE FTA-ABS IGG P/ DIAGNOSTICO DA SIFILIS": "0202031128",
        "TESTE FTA-ABS IGM P/ DIAGNOSTICO DA SIFILIS": "0202031136",
        "ELETROCARDIOGRAMA": "0211020036",
        "RETIRADA DE CORPO ESTRANHO SUBCUTANEO": "0401010112",
        "CATETERISMO VERSICAL DE CANAIS EJACULADORES": "0309030021",
        "RETIRADA DE PONTOS": "0301100152",
        "RETIRADA DE CORPO ESTRANHO DE OUVIDO": "0404010300",
        "CATETERISMO VESICAL DE DEMORA": "0301100055",
        "SUTURA": "0401010066",
    }
)

TECHNICIAN_PROCEDURES = MappingProxyType(
    {
        "COLETA EXTERNA DE LEITE MATERNO (POR DOADORA)": "0101040032",
        "PROVA DO LACO": "0202020509",
        "TESTE RAPIDO PARA DETECCAO DE HIV NA GESTANTE OU PAI/PARCEIRO": "0214010040",
        "TESTE RAPIDO PARA DETECCAO DE INFECCAO PELO HIV": "0214010058",
        "TESTE RAPIDO PARA SIFILIS": "0214010074",
        "ELETROCARDIOGRAMA": "0211020036",
        "ADMINISTRACAO DE MEDICAMENTOS NA ATENCAO ESPECIALIZADA": "0301100012",
        "RETIRADA DE PONTOS": "0301100152",
    }
)

PROCEDURE_DICTIONARIES: dict[ProcedureContext, MappingProxyType[str, str]] = {
    "physician": PHYSICIAN_PROCEDURES,
    "nursing": NURSING_PROCEDURES,
    "technician": TECHNICIAN_PROCEDURES,
}

# Fallback scan order when the context dictionary has no entry.
FALLBACK_ORDER: tuple[ProcedureContext, ...] = ("physician", "nursing", "technician")


def procedure_context(header_text: str | None) -> ProcedureContext:
    """Pick the dictionary for the header text of the procedure column."""

    header = normalize_key(header_text)
    if "TEC" in header or "AUX" in header:
        return "technician"
    if "ENFERMAGEM" in header:
        return "nursing"
    return "physician"


def lookup_procedure(description: str, context: ProcedureContext) -> str | None:
    key = normalize_key(description)
    if not key:
        return None
    code = PROCEDURE_DICTIONARIES[context].get(key)
    if code:
        return code
    for fallback_context in FALLBACK_ORDER:
        code = PROCEDURE_DICTIONARIES[fallback_context].get(key)
        if code:
            return code
    return None


def normalize_procedure(value: str | None, context_header: str = "") -> str:
    """Resolve a procedure description or code to its numeric code.

    The same description can map to different codes depending on which
    professional category performed it, so the header of the originating
    column selects the dictionary. Unknown text is treated as a code.
    """

    if not value:
        return ""
    code = lookup_procedure(value, procedure_context(context_header))
    if code is not None:
        return digits_only(code)
    return digits_only(value)


PHYSICIAN_CBO = "225125"
NURSE_CBO = "223505"
TECHNICIAN_CBO = "322205"

# Medication administration is never billed under the physician occupation.
FORBIDDEN_PHYSICIAN_PROCEDURE = "0301100012"


def cbo_override(header_text: str | None) -> str:
    """Occupation code implied by a ``BPA ...`` procedure column header, or ``""``."""

    header = normalize_key(header_text)
    if "BPA" not in header:
        return ""
    if "TEC" in header or "AUX" in header:
        return TECHNICIAN_CBO
    if "ENFERMAGEM" in header:
        return NURSE_CBO
    if "MEDICO" in header:
        return PHYSICIAN_CBO
    return ""


def is_physician_header(header_text: str | None) -> bool:
    return cbo_override(header_text) == PHYSICIAN_CBO
