from taxiquery.report.markdown import format_seconds, render_comparison_table, render_markdown, write_report

__all__ = ["format_seconds", "render_comparison_table", "render_markdown", "write_report"]
