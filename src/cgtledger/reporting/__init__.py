from .report_builder import ReportBuilder
from .report_sink import ExcelReportSink, ReportSink

__all__ = ["ReportBuilder", "ReportSink", "ExcelReportSink"]
