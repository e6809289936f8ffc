# tests/address_resolution/domain/test_address_normalizer.py

from address_resolution.domain.address_normalizer import (
    extract_postal_code,
    normalize_address,
    normalize_base,
    normalize_for_cache,
    normalize_for_geocoding,
    normalize_geo_name,
    normalize_rm,
    tokenize,
)


def test_normalize_address_unifica_delimitadores_e_extrai_indice():
    raw = "  Г. Москва;  ул. Ленина 5 | 101000, Россия "

    norm = normalize_address(raw)

    assert norm.raw == raw
    assert norm.text == "г. москва, ул. ленина 5, 101000"
    assert norm.postal_code == "101000"
    assert norm.tokens == ["г", "москва", "ул", "ленина", "5", "101000"]
    assert norm.text_without_postal() == "г. москва, ул. ленина 5"


def test_normalize_address_vazio():
    assert normalize_address("   ").is_empty
    assert normalize_address(None).is_empty
    assert normalize_address(None).postal_code is None


def test_extract_postal_code_ignora_numeros_longos():
    assert extract_postal_code("тел 12345678") is None
    assert extract_postal_code("индекс 42011") == "42011"
    assert extract_postal_code("дом 5") is None


def test_normalize_base_mantem_caixa_e_remove_pais():
    assert normalize_base("Казань,, ул. Баумана 1 , Российская Федерация") == "Казань, ул. Баумана 1"


def test_normalize_for_cache_chave_canonica():
    a = normalize_for_cache("Г. Москва, ул. Ленина, д.5")
    b = normalize_for_cache("г. москва ул. ленина д. 5")

    assert a == "г москва ул ленина д 5"
    assert a == b


def test_normalize_for_geocoding_expande_abreviacoes():
    assert normalize_for_geocoding("г. Москва, пр-т Мира, д. 10, кв. 5") == "москва, проспект мира, 10"


def test_normalize_geo_name_e_rm():
    assert normalize_geo_name("г. Орёл") == "орел"
    assert normalize_geo_name("«Казань»") == "казань"
    assert normalize_rm("  Иванов   И.И. ") == "иванов и.и."


def test_tokenize_preserva_hifen():
    assert tokenize("Ростов-на-Дону, ул. Ёлкина") == ["ростов-на-дону", "ул", "елкина"]
