import json
from datetime import date

import pytest

from minhareceita.transform.cast import to_float
from minhareceita.transform.company import Partner
from minhareceita.transform.lookups import Lookups
from minhareceita.transform.records import add_base, add_partners, add_tax, new_partner

BASE_ROW = [
    "33683111",
    "SERVICO FEDERAL DE PROCESSAMENTO DE DADOS (SERPRO)",
    "2011",
    "16",
    "1061004800,000000",
    "05",
    "",
]

PARTNER_ROW = [
    "33683111",
    "2",
    "ANTONIO DE PADUA FERREIRA PASSOS",
    "***595901**",
    "10",
    "20161208",
    "",
    "***000000**",
    "",
    "00",
    "7",
]

TAX_ROW = ["33683111", "S", "20140101", "00000000", "N", "00000000", "00000000"]


@pytest.fixture
def lookups():
    return Lookups(
        motives={},
        cities={},
        countries={},
        cnaes={},
        qualifications={10: "Diretor"},
        natures={2011: "Empresa Pública"},
        ibge={},
    )


def test_add_base(lookups):
    key, text = add_base(lookups, BASE_ROW)
    data = json.loads(text)
    assert key == "33683111"
    assert data["razao_social"] == "SERVICO FEDERAL DE PROCESSAMENTO DE DADOS (SERPRO)"
    assert data["codigo_natureza_juridica"] == 2011
    assert data["natureza_juridica"] == "Empresa Pública"
    assert data["qualificacao_do_responsavel"] == 16
    assert data["capital_social"] == to_float("1061004800.000000")
    assert data["codigo_porte"] == 5
    assert data["porte"] == "DEMAIS"
    assert data["ente_federativo_responsavel"] == ""


def test_add_base_invalid_number(lookups):
    row = list(BASE_ROW)
    row[3] = "foobar"
    with pytest.raises(ValueError):
        add_base(lookups, row)


def test_add_base_missing_nature(lookups):
    row = list(BASE_ROW)
    row[2] = ""
    with pytest.raises(ValueError):
        add_base(lookups, row)


def test_new_partner(lookups):
    got = new_partner(lookups, PARTNER_ROW)
    assert got.identificador_de_socio == 2
    assert got.nome_socio == "ANTONIO DE PADUA FERREIRA PASSOS"
    assert got.cnpj_cpf_do_socio == "***595901**"
    assert got.codigo_qualificacao_socio == 10
    assert got.qualificacao_socio == "Diretor"
    assert got.data_entrada_sociedade == date(2016, 12, 8)
    assert got.codigo_pais is None
    assert got.pais is None
    assert got.cpf_representante_legal == "***000000**"
    assert got.nome_representante_legal == ""
    assert got.codigo_qualificacao_representante_legal == 0
    assert got.qualificacao_representante_legal is None
    assert got.codigo_faixa_etaria == 7
    assert got.faixa_etaria == "Entre 61 a 70 anos"


def test_new_partner_invalid_date(lookups):
    row = list(PARTNER_ROW)
    row[5] = "foobar"
    with pytest.raises(ValueError):
        new_partner(lookups, row)


def test_add_partners_round_trip(lookups):
    key, text = add_partners(lookups, PARTNER_ROW)
    data = json.loads(text)
    assert key == "33683111"
    assert len(data) == 1
    assert Partner.from_dict(data[0]) == new_partner(lookups, PARTNER_ROW)


def test_add_tax(lookups):
    key, text = add_tax(lookups, TAX_ROW)
    data = json.loads(text)
    assert key == "33683111"
    assert data["opcao_pelo_simples"] is True
    assert data["data_opcao_pelo_simples"] == "2014-01-01"
    assert data["data_exclusao_do_simples"] is None
    assert data["opcao_pelo_mei"] is False
    assert data["data_opcao_pelo_mei"] is None
    assert data["data_exclusao_do_mei"] is None


def test_add_tax_invalid_date(lookups):
    row = list(TAX_ROW)
    row[6] = "foobar"
    with pytest.raises(ValueError):
        add_tax(lookups, row)