from .reports import AnalysisReportRequest, ReportStatus, ViewNodeIn
