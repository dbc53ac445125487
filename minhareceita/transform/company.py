"""Company records built from the venues (Estabelecimentos) CSV rows."""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass, fields
from datetime import date
from typing import Any

from minhareceita.transform.cast import format_date, parse_date, to_date, to_int
from minhareceita.transform.lookups import Lookups

logger = logging.getLogger(__name__)

# masks a CPF at the end of the trade name of individual micro-entrepreneurs
_NAME_CPF = re.compile(r"([^0-9])([0-9]{3})([0-9]{5})([0-9]{3})$")

_MATRIZ_FILIAL = {1: "MATRIZ", 2: "FILIAL"}
_SITUACAO_CADASTRAL = {
    1: "NULA",
    2: "ATIVA",
    3: "SUSPENSA",
    4: "INAPTA",
    8: "BAIXADA",
}


def _json_value(value: Any) -> Any:
    if isinstance(value, date):
        return format_date(value)
    if isinstance(value, list):
        return [item.to_dict() for item in value]
    return value


def _dump(record) -> dict[str, Any]:
    return {f.name: _json_value(getattr(record, f.name)) for f in fields(record)}


def _load(cls, data: dict[str, Any], dates: frozenset[str]) -> dict[str, Any]:
    """Keyword arguments for ``cls`` from a decoded JSON object."""
    kwargs: dict[str, Any] = {}
    for f in fields(cls):
        if f.name not in data:
            continue
        value = data[f.name]
        if f.name in dates:
            value = parse_date(value) if value is not None else None
        elif value is None and f.default == "":
            value = ""
        kwargs[f.name] = value
    return kwargs


def _describe(table: dict[int, str], code: int) -> str | None:
    return table.get(code) or None


@dataclass
class Cnae:
    """An economic activity code and its description."""

    codigo: int = 0
    descricao: str = ""

    def to_dict(self) -> dict[str, Any]:
        return _dump(self)


_PARTNER_DATES = frozenset({"data_entrada_sociedade"})


@dataclass
class Partner:
    """A partner (sócio) of a company."""

    identificador_de_socio: int | None = None
    nome_socio: str = ""
    cnpj_cpf_do_socio: str = ""
    codigo_qualificacao_socio: int | None = None
    qualificacao_socio: str | None = None
    data_entrada_sociedade: date | None = None
    codigo_pais: int | None = None
    pais: str | None = None
    cpf_representante_legal: str = ""
    nome_representante_legal: str = ""
    codigo_qualificacao_representante_legal: int | None = None
    qualificacao_representante_legal: str | None = None
    codigo_faixa_etaria: int | None = None
    faixa_etaria: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return _dump(self)

    @staticmethod
    def from_dict(data: dict[str, Any]) -> Partner:
        return Partner(**_load(Partner, data, _PARTNER_DATES))


_COMPANY_DATES = frozenset(
    {
        "data_situacao_cadastral",
        "data_inicio_atividade",
        "data_situacao_especial",
        "data_opcao_pelo_simples",
        "data_exclusao_do_simples",
        "data_opcao_pelo_mei",
        "data_exclusao_do_mei",
    }
)


@dataclass
class Company:
    """The full record served for one CNPJ."""

    cnpj: str = ""
    identificador_matriz_filial: int | None = None
    descricao_identificador_matriz_filial: str | None = None
    nome_fantasia: str = ""
    situacao_cadastral: int | None = None
    descricao_situacao_cadastral: str | None = None
    data_situacao_cadastral: date | None = None
    motivo_situacao_cadastral: int | None = None
    descricao_motivo_situacao_cadastral: str | None = None
    nome_cidade_no_exterior: str = ""
    codigo_pais: int | None = None
    pais: str | None = None
    data_inicio_atividade: date | None = None
    cnae_fiscal: int | None = None
    cnae_fiscal_descricao: str | None = None
    descricao_tipo_de_logradouro: str = ""
    logradouro: str = ""
    numero: str = ""
    complemento: str = ""
    bairro: str = ""
    cep: str = ""
    uf: str = ""
    codigo_municipio: int | None = None
    codigo_municipio_ibge: int | None = None
    municipio: str | None = None
    ddd_telefone_1: str = ""
    ddd_telefone_2: str = ""
    ddd_fax: str = ""
    email: str | None = None
    situacao_especial: str = ""
    data_situacao_especial: date | None = None
    opcao_pelo_simples: bool | None = None
    data_opcao_pelo_simples: date | None = None
    data_exclusao_do_simples: date | None = None
    opcao_pelo_mei: bool | None = None
    data_opcao_pelo_mei: date | None = None
    data_exclusao_do_mei: date | None = None
    razao_social: str = ""
    codigo_natureza_juridica: int | None = None
    natureza_juridica: str | None = None
    qualificacao_do_responsavel: int | None = None
    capital_social: float | None = None
    codigo_porte: int | None = None
    porte: str | None = None
    ente_federativo_responsavel: str = ""
    descricao_porte: str = ""
    qsa: list[Partner] | None = None
    cnaes_secundarios: list[Cnae] | None = None

    def to_dict(self) -> dict[str, Any]:
        return _dump(self)

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), ensure_ascii=False, separators=(",", ":"))


def company_name_cleanup(name: str) -> str:
    """Mask a CPF found at the end of a company name."""
    return _NAME_CPF.sub(r"\1***\3***", name).strip()


def _required_int(value: str, name: str) -> int:
    code = to_int(value)
    if code is None:
        raise ValueError(f"error trying to parse {name}: missing value")
    return code


def _new_cnae(lookups: Lookups, value: str) -> Cnae:
    code = to_int(value)
    if code is None:
        return Cnae()
    return Cnae(codigo=code, descricao=lookups.cnaes.get(code, ""))


def _set_cnaes(company: Company, lookups: Lookups, primary: str, secondary: str) -> None:
    main = _new_cnae(lookups, primary)
    company.cnae_fiscal = main.codigo
    if main.descricao:
        company.cnae_fiscal_descricao = main.descricao
    company.cnaes_secundarios = [_new_cnae(lookups, n) for n in secondary.split(",")]


def _set_city(company: Company, lookups: Lookups, value: str) -> None:
    if company.uf == "EX":
        return
    code = to_int(value)
    if code is None:
        return
    company.codigo_municipio = code
    name = lookups.cities.get(code)
    if name is None:
        return
    company.municipio = name
    ibge = lookups.ibge.get(code)
    if ibge is None:
        logger.info("Could not find IBGE city code for %s-%s (%d)", name, company.uf, code)
        return
    company.codigo_municipio_ibge = to_int(ibge)


def new_company(row: list[str], lookups: Lookups, privacy: bool) -> Company:
    """Build a company from a venues CSV row, optionally hiding personal data."""
    company = Company(
        cnpj=row[0] + row[1] + row[2],
        nome_fantasia=row[4],
        nome_cidade_no_exterior=row[8],
        descricao_tipo_de_logradouro=row[13],
        logradouro=row[14],
        numero=row[15],
        complemento=row[16],
        bairro=row[17],
        cep=row[18],
        uf=row[19],
        ddd_telefone_1=row[21] + row[22],
        ddd_telefone_2=row[23] + row[24],
        ddd_fax=row[25] + row[26],
        email=row[27],
        situacao_especial=row[28],
    )
    if privacy:
        company.nome_fantasia = company_name_cleanup(row[4])
        company.email = None

    matriz_filial = _required_int(row[3], "IdentificadorMatrizFilial")
    company.identificador_matriz_filial = matriz_filial
    company.descricao_identificador_matriz_filial = _MATRIZ_FILIAL.get(matriz_filial)

    situacao = _required_int(row[5], "SituacaoCadastral")
    company.situacao_cadastral = situacao
    company.descricao_situacao_cadastral = _SITUACAO_CADASTRAL.get(situacao)

    company.data_situacao_cadastral = to_date(row[6])

    motivo = to_int(row[7])
    if motivo is not None:
        company.motivo_situacao_cadastral = motivo
        company.descricao_motivo_situacao_cadastral = _describe(lookups.motives, motivo)

    pais = to_int(row[9])
    if pais is not None:
        company.codigo_pais = pais
        company.pais = _describe(lookups.countries, pais)

    company.data_inicio_atividade = to_date(row[10])
    _set_cnaes(company, lookups, row[11], row[12])
    _set_city(company, lookups, row[20])
    company.data_situacao_especial = to_date(row[29])
    return company


def company_from_json(text: str) -> Company:
    """Decode a company from its JSON representation."""
    data = json.loads(text)
    kwargs = _load(Company, data, _COMPANY_DATES)
    partners = data.get("qsa")
    kwargs["qsa"] = (
        [Partner.from_dict(p) for p in partners] if partners is not None else None
    )
    cnaes = data.get("cnaes_secundarios")
    kwargs["cnaes_secundarios"] = (
        [Cnae(codigo=c.get("codigo") or 0, descricao=c.get("descricao") or "") for c in cnaes]
        if cnaes is not None
        else None
    )
    return Company(**kwargs)