# tests/address_resolution/domain/test_geo_reference_index.py

import pytest

from address_resolution.domain.geo_reference_index import (
    GeoReferenceIndex,
    geography_key,
    standardize_region,
)


@pytest.mark.parametrize(
    "entrada, esperado",
    [
        ("Орёл", "Орловская область"),
        ("Московская обл.", "Московская область"),
        ("Респ. Татарстан", "Республика Татарстан"),
        ("Тверская обл", "Тверская область"),
        ("г. Москва", "Москва"),
        ("", None),
        (None, None),
    ],
)
def test_standardize_region(entrada, esperado):
    assert standardize_region(entrada) == esperado


def test_city_resolve_apelidos():
    index = GeoReferenceIndex.from_defaults()

    spb = index.city("СПб")
    assert spb is not None
    assert spb.city == "Санкт-Петербург"
    assert spb.region == "Санкт-Петербург"

    rostov = index.city("г. Ростов-на-Дону")
    assert rostov.city == "Ростов-на-Дону"
    assert rostov.region == "Ростовская область"

    assert index.city("Неизвестноград") is None


def test_region_por_palavra_chave():
    index = GeoReferenceIndex.from_defaults()

    assert index.region("Республика Татарстан").region == "Республика Татарстан"
    assert index.region("Краснодарский край").region == "Краснодарский край"
    assert index.region("улица Ленина") is None


def test_postal_especificidade():
    index = GeoReferenceIndex.from_defaults()

    exato = index.postal("101000")
    assert (exato.region, exato.city, exato.specificity) == ("Москва", "Москва", 1.0)

    prefixo_cidade = index.postal("420015")
    assert (prefixo_cidade.city, prefixo_cidade.specificity) == ("Казань", 0.8)

    prefixo_regiao = index.postal("141500")
    assert (prefixo_regiao.region, prefixo_regiao.city, prefixo_regiao.specificity) == ("Московская область", None, 0.6)

    assert index.postal("999999") is None
    assert index.postal("10100") is None
    assert index.postal(None) is None


def test_extend_adiciona_cidades_da_okb():
    index = GeoReferenceIndex.from_defaults()
    total_antes = len(index.entities())

    novos = index.extend([("Урюпинск", "Волгоградская обл."), ("Казань", "Респ. Татарстан"), (None, None)])

    assert novos == 1
    assert len(index.entities()) == total_antes + 1
    urupinsk = index.city("г. Урюпинск")
    assert urupinsk.city == "Урюпинск"
    assert urupinsk.region == "Волгоградская область"


def test_geography_key():
    assert geography_key("СПб", None) == "санкт-петербург"
    assert geography_key("г. Казань", "Респ. Татарстан") == "казань"
    assert geography_key(None, "Московская обл.") == "московская область"
    assert geography_key(None, None) is None
