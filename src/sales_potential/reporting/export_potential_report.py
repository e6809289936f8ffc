# ============================================================
# 📊 src/sales_potential/reporting/export_potential_report.py
# ============================================================

import json
from datetime import datetime
from pathlib import Path
from typing import Dict, Optional

import pandas as pd
from loguru import logger
from openpyxl.styles import Alignment, Font
from openpyxl.utils import get_column_letter

from sales_potential.application.potential_report_use_case import PotentialReport

# colunas planas do CSV / XLSX (listas de clientes ficam só no JSON)
COLUNAS = {
    "rm": "RM",
    "brand": "Бренд",
    "city": "Город",
    "region": "Регион",
    "geo_key": "Ключ географии",
    "fact": "Факт",
    "potential": "Потенциал",
    "growth_potential": "Потенциал роста",
    "growth_percentage": "Рост, %",
    "active_clients": "Активные ТТ",
    "potential_clients_count": "Потенциальные ТТ",
    "total_market": "ТТ в ОКБ",
}


def report_to_frame(report: PotentialReport) -> pd.DataFrame:
    registros = [r.to_dict() for r in report.rows]
    df = pd.DataFrame(registros, columns=list(COLUNAS))
    return df.rename(columns=COLUNAS)


def _salvar_xlsx(df: pd.DataFrame, arquivo: Path):
    with pd.ExcelWriter(arquivo, engine="openpyxl") as writer:
        df.to_excel(writer, sheet_name="Потенциал", index=False)
        ws = writer.book["Потенциал"]

        ws.freeze_panes = "A2"

        header_font = Font(bold=True)
        header_align = Alignment(horizontal="center", vertical="center", wrap_text=True)
        for cell in ws[1]:
            cell.font = header_font
            cell.alignment = header_align

        for col_idx, coluna in enumerate(df.columns, start=1):
            largura = max([len(str(coluna))] + [len(str(v)) for v in df[coluna].head(200)])
            ws.column_dimensions[get_column_letter(col_idx)].width = min(max(largura + 2, 10), 40)


def exportar_relatorio(report: PotentialReport, output_dir: str, prefixo: Optional[str] = None) -> Dict[str, str]:
    """
    Grava CSV (;, utf-8-sig), JSON completo e XLSX formatado.
    Retorna {formato: caminho}.
    """
    pasta = Path(output_dir) / str(report.year)
    pasta.mkdir(parents=True, exist_ok=True)

    stamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    base = prefixo or f"potencial_{report.year}_{stamp}"
    caminhos: Dict[str, str] = {}

    df = report_to_frame(report)

    arquivo_csv = pasta / f"{base}.csv"
    df.to_csv(arquivo_csv, index=False, sep=";", encoding="utf-8-sig")
    caminhos["csv"] = str(arquivo_csv)

    arquivo_json = pasta / f"{base}.json"
    with open(arquivo_json, "w", encoding="utf-8") as f:
        json.dump(
            {"summary": report.summary(), "rows": [r.to_dict() for r in report.rows]},
            f,
            ensure_ascii=False,
            indent=2,
        )
    caminhos["json"] = str(arquivo_json)

    arquivo_xlsx = pasta / f"{base}.xlsx"
    _salvar_xlsx(df, arquivo_xlsx)
    caminhos["xlsx"] = str(arquivo_xlsx)

    if report.okb_invalid is not None and not report.okb_invalid.empty:
        arquivo_inv = pasta / f"{base}_okb_invalidos.csv"
        report.okb_invalid.to_csv(arquivo_inv, index=False, sep=";", encoding="utf-8-sig")
        caminhos["okb_invalidos"] = str(arquivo_inv)
        logger.warning(f"⚠️ {len(report.okb_invalid)} registro(s) OKB inválidos salvos em: {arquivo_inv}")

    logger.success(f"✅ Relatório exportado: {', '.join(caminhos.values())}")
    return caminhos
