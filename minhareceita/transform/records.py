"""JSON updates for base CNPJ, partner and tax rows, keyed by base CNPJ."""

from __future__ import annotations

import json
from contextlib import suppress
from datetime import date
from typing import Any

from minhareceita.transform.cast import format_date, to_bool, to_date, to_float, to_int
from minhareceita.transform.company import Partner
from minhareceita.transform.lookups import Lookups

_PORTE = {
    0: "NÃO INFORMADO",
    1: "MICRO EMPRESA",
    3: "EMPRESA DE PEQUENO PORTE",
    5: "DEMAIS",
}

_FAIXA_ETARIA = {
    0: "Não se aplica",
    1: "para os intervalos entre 0 a 12 anos",
    2: "Entre 13 a 20 ano",
    3: "Entre 21 a 30 anos",
    4: "Entre 31 a 40 anos",
    5: "Entre 41 a 50 anos",
    6: "Entre 51 a 60 anos",
    7: "Entre 61 a 70 anos",
    8: "Entre 71 a 80 anos",
    9: "Maiores de 80 anos",
}


def _dumps(data: Any) -> str:
    return json.dumps(data, ensure_ascii=False, separators=(",", ":"))


def _date(value: date | None) -> str | None:
    return format_date(value) if value is not None else None


def add_base(lookups: Lookups, row: list[str]) -> tuple[str, str]:
    """JSON with the base CNPJ data (company name, legal nature, size…)."""
    try:
        natureza = to_int(row[2])
        qualificacao = to_int(row[3])
        capital = to_float(row[4])
        porte = to_int(row[5])
        if natureza is None:
            raise ValueError("missing CodigoNaturezaJuridica")
    except ValueError as err:
        raise ValueError(f"error handling base data for base cnpj {row[0]}: {err}") from err
    data = {
        "codigo_porte": porte,
        "porte": _PORTE.get(porte),
        "razao_social": row[1],
        "codigo_natureza_juridica": natureza,
        "natureza_juridica": lookups.natures.get(natureza) or None,
        "qualificacao_do_responsavel": qualificacao,
        "capital_social": capital,
        "ente_federativo_responsavel": row[6],
    }
    return row[0], _dumps(data)


def _set_country(partner: Partner, lookups: Lookups, value: str) -> None:
    with suppress(ValueError):
        code = to_int(value)
        if code is not None:
            partner.codigo_pais = code
            partner.pais = lookups.countries.get(code) or None


def _set_age_group(partner: Partner, value: str) -> None:
    with suppress(ValueError):
        code = to_int(value)
        partner.codigo_faixa_etaria = code
        partner.faixa_etaria = _FAIXA_ETARIA.get(code)


def _set_qualifications(partner: Partner, lookups: Lookups, own: str, legal: str) -> None:
    try:
        own_code = to_int(own)
        legal_code = to_int(legal)
    except ValueError:
        return
    if own_code is not None:
        partner.codigo_qualificacao_socio = own_code
        partner.qualificacao_socio = lookups.qualifications.get(own_code) or None
    if legal_code is not None:
        partner.codigo_qualificacao_representante_legal = legal_code
        partner.qualificacao_representante_legal = (
            lookups.qualifications.get(legal_code) or None
        )


def new_partner(lookups: Lookups, row: list[str]) -> Partner:
    """Build a partner from a partners (Socios) CSV row."""
    try:
        identificador = to_int(row[1])
    except ValueError as err:
        raise ValueError(f"error parsing IdentificadorDeSocio {row[1]}: {err}") from err
    try:
        entrada = to_date(row[5])
    except ValueError as err:
        raise ValueError(f"error parsing DataEntradaSociedade {row[5]}: {err}") from err
    partner = Partner(
        identificador_de_socio=identificador,
        nome_socio=row[2],
        cnpj_cpf_do_socio=row[3],
        data_entrada_sociedade=entrada,
        cpf_representante_legal=row[7],
        nome_representante_legal=row[8],
    )
    _set_country(partner, lookups, row[6])
    _set_age_group(partner, row[10])
    _set_qualifications(partner, lookups, row[4], row[9])
    return partner


def add_partners(lookups: Lookups, row: list[str]) -> tuple[str, str]:
    """JSON array holding the single partner described by ``row``."""
    try:
        partner = new_partner(lookups, row)
    except ValueError as err:
        raise ValueError(f"error creating partner for {row}: {err}") from err
    return row[0], _dumps([partner.to_dict()])


def add_tax(lookups: Lookups, row: list[str]) -> tuple[str, str]:
    """JSON with the Simples and MEI tax regime options."""
    names = (
        "DataOpcaoPeloSimples",
        "DataExclusaoDoSimples",
        "DataOpcaoPeloMEI",
        "DataExclusaoDoMEI",
    )
    dates = []
    for name, value in zip(names, (row[2], row[3], row[5], row[6])):
        try:
            dates.append(to_date(value))
        except ValueError as err:
            raise ValueError(f"error parsing {name} {value}: {err}") from err
    data = {
        "opcao_pelo_simples": to_bool(row[1]),
        "data_opcao_pelo_simples": _date(dates[0]),
        "data_exclusao_do_simples": _date(dates[1]),
        "opcao_pelo_mei": to_bool(row[4]),
        "data_opcao_pelo_mei": _date(dates[2]),
        "data_exclusao_do_mei": _date(dates[3]),
    }
    return row[0], _dumps(data)