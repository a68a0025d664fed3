from forge_deploy.formatters.report_formatters import (
    format_deployment_report,
    format_health_report,
    sanitize_status_text,
)

__all__ = ["format_deployment_report", "format_health_report", "sanitize_status_text"]
