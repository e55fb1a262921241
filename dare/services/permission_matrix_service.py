# SPDX-FileCopyrightText: 2025 Roland Knall <rknall@gmail.com>
# SPDX-License-Identifier: GPL-2.0-only
"""Role/permission matrix export for access audits."""

import csv
import io
from datetime import datetime

from openpyxl import Workbook
from openpyxl.styles import Alignment, Border, Font, PatternFill, Side
from openpyxl.utils import get_column_letter
from sqlalchemy.orm import Session

from dare.models import Role, RolePermission
from dare.rbac.permissions import catalog_entries
from dare.rbac.roles import ADMIN_ROLE_NAME
from dare.services import rbac_service

GRANTED = "X"
BYPASS = "*"


class PermissionMatrixReport:
    """One row per catalog entry, one column per role."""

    def __init__(self, db: Session) -> None:
        self.db = db

    def build(self) -> tuple[list[str], list[list[str]]]:
        """Return the header row and the data rows of the matrix.

        Cells hold ``X`` for an explicit grant, ``*`` for the admin bypass
        without an explicit row, and an empty string otherwise.
        """
        roles: list[Role] = rbac_service.list_roles(self.db)
        granted = {
            (g.role_id, g.resource, g.action)
            for g in self.db.query(
                RolePermission.role_id, RolePermission.resource, RolePermission.action
            )
        }

        header = ["Module", "Resource", "Action"] + [role.name for role in roles]
        rows = []
        for entry in catalog_entries():
            row = [entry["module"], entry["resource"], entry["action"]]
            for role in roles:
                if (role.id, entry["resource"], entry["action"]) in granted:
                    row.append(GRANTED)
                elif role.name.lower() == ADMIN_ROLE_NAME:
                    row.append(BYPASS)
                else:
                    row.append("")
            rows.append(row)
        return header, rows

    def to_csv(self) -> bytes:
        header, rows = self.build()
        output = io.StringIO()
        writer = csv.writer(output)
        writer.writerow(header)
        writer.writerows(rows)
        return output.getvalue().encode("utf-8")

    def to_excel(self) -> bytes:
        header, rows = self.build()

        wb = Workbook()
        ws = wb.active
        ws.title = "Permissions"

        header_font = Font(bold=True, color="FFFFFF")
        header_fill = PatternFill(
            start_color="4472C4", end_color="4472C4", fill_type="solid"
        )
        centered = Alignment(horizontal="center", vertical="center")
        border = Border(
            left=Side(style="thin"),
            right=Side(style="thin"),
            top=Side(style="thin"),
            bottom=Side(style="thin"),
        )

        ws["A1"] = "Role Permission Matrix"
        ws["A1"].font = Font(bold=True, size=14)
        ws["A2"] = f"Generated: {datetime.now().strftime('%Y-%m-%d %H:%M')}"

        header_row = 4
        for col, value in enumerate(header, 1):
            cell = ws.cell(row=header_row, column=col, value=value)
            cell.font = header_font
            cell.fill = header_fill
            cell.alignment = centered
            cell.border = border

        for offset, row in enumerate(rows, 1):
            for col, value in enumerate(row, 1):
                cell = ws.cell(row=header_row + offset, column=col, value=value)
                cell.border = border
                if col > 3:
                    cell.alignment = centered

        ws.freeze_panes = ws.cell(row=header_row + 1, column=4)
        for col in range(1, len(header) + 1):
            width = 20 if col <= 3 else max(10, len(header[col - 1]) + 2)
            ws.column_dimensions[get_column_letter(col)].width = width

        output = io.BytesIO()
        wb.save(output)
        return output.getvalue()

    def get_filename(self, fmt: str) -> str:
        return f"permission_matrix_{datetime.now().strftime('%Y-%m-%d')}.{fmt}"
