# tests/sales_potential/domain/test_okb_validation_service.py

from sales_potential.domain.okb_validation_service import OKBValidationService

from tests.conftest import OKB_ROWS


def test_validar_separa_invalidos_com_motivo():
    linhas = OKB_ROWS + [{"Наименование": "", "Город": "", "Регион": None}]

    validos, invalidos = OKBValidationService().validar(linhas)

    assert [r.name for r in validos] == ["ООО «Ромашка»", "ООО Лютик", "ООО Василек", "ООО Степь"]
    assert len(invalidos) == 1
    assert invalidos.iloc[0]["linha"] == 4
    assert invalidos.iloc[0]["motivo_invalidade"] == "OKB sem nome"


def test_validar_vazio():
    validos, invalidos = OKBValidationService().validar([])

    assert validos == []
    assert invalidos.empty
