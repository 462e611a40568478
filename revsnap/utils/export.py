"""Export of pricing analyses to CSV and Excel."""

from __future__ import annotations

import csv
import io
from datetime import datetime
from typing import Any

import pandas as pd
from openpyxl.utils import get_column_letter

from revsnap.core.models import PricingAnalysis, PricingRecommendation


class Exporter:
    """Exports pricing analyses to downloadable formats."""

    CSV_MIMETYPE = "text/csv"
    XLSX_MIMETYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"

    @staticmethod
    def recommendations_to_dict(recommendations: list[PricingRecommendation]) -> list[dict[str, Any]]:
        """Convert recommendations to rows for export."""
        rows = []
        for r in recommendations:
            rows.append(
                {
                    "Product Name": r.product_name,
                    "Category": r.category,
                    "Current Price": float(r.current_price),
                    "Cost": float(r.cost),
                    "Units Sold": r.units_sold,
                    "Current Margin %": float(r.current_margin * 100),
                    "Recommended Price": float(r.recommended_price),
                    "Projected Margin %": float(r.projected_margin * 100),
                    "Price Change": float(r.price_change),
                    "Price Change %": float(r.price_change_pct),
                    "Revenue Impact": float(r.revenue_impact),
                    "Confidence": r.confidence.value,
                    "Rule": r.rule.value,
                    "Reasoning": r.reasoning,
                }
            )
        return rows

    @staticmethod
    def summary_to_dict(analysis: PricingAnalysis) -> list[dict[str, Any]]:
        """Convert the analysis summary to metric/value rows."""
        s = analysis.summary
        return [
            {"Metric": "Total Products", "Value": s.total_products},
            {"Metric": "Total Current Revenue", "Value": float(s.total_current_revenue)},
            {"Metric": "Total Projected Revenue", "Value": float(s.total_projected_revenue)},
            {"Metric": "Revenue Uplift", "Value": float(s.revenue_uplift)},
            {"Metric": "Revenue Uplift %", "Value": float(s.revenue_uplift_pct)},
            {"Metric": "Avg Margin Improvement %", "Value": float(s.avg_margin_improvement * 100)},
            {"Metric": "High Confidence Recommendations", "Value": s.high_confidence_count},
            {"Metric": "Created At", "Value": analysis.created_at.isoformat()},
        ]

    @classmethod
    def export_to_csv(cls, analysis: PricingAnalysis) -> bytes:
        """Export the recommendations of an analysis to CSV."""
        rows = cls.recommendations_to_dict(analysis.recommendations)

        buffer = io.StringIO(newline="")
        if rows:
            writer = csv.DictWriter(buffer, fieldnames=rows[0].keys())
            writer.writeheader()
            writer.writerows(rows)
        return buffer.getvalue().encode("utf-8")

    @classmethod
    def export_to_xlsx(cls, analysis: PricingAnalysis) -> bytes:
        """Export an analysis to Excel with summary and recommendation sheets."""
        sheets = {
            "Summary": pd.DataFrame(cls.summary_to_dict(analysis)),
            "Recommendations": pd.DataFrame(cls.recommendations_to_dict(analysis.recommendations)),
            "Top Opportunities": pd.DataFrame(cls.recommendations_to_dict(analysis.top_opportunities)),
        }

        buffer = io.BytesIO()
        with pd.ExcelWriter(buffer, engine="openpyxl") as writer:
            for sheet_name, df in sheets.items():
                df.to_excel(writer, index=False, sheet_name=sheet_name)

                # Auto-adjust column widths
                worksheet = writer.sheets[sheet_name]
                for i, col in enumerate(df.columns, start=1):
                    values = df[col].astype(str).apply(len)
                    max_length = max(values.max() if len(values) else 0, len(str(col)))
                    worksheet.column_dimensions[get_column_letter(i)].width = min(max_length + 2, 50)

        return buffer.getvalue()

    @classmethod
    def generate_filename(cls, analysis_id: int | None, extension: str) -> str:
        """Generate a timestamped filename for export."""
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        return f"pricing_analysis_{analysis_id or 'new'}_{timestamp}.{extension}"
