from liqo.infrastructure.spreadsheets.group_workbook import (
    TEMPLATE_FILENAME,
    build_group_template,
    read_group_spreadsheet,
)

__all__ = ["TEMPLATE_FILENAME", "build_group_template", "read_group_spreadsheet"]
