"""
Workbook ingestion and KPI aggregation pipeline.
"""

from ingestion.assembler import ReleaseAssembler, ReleaseState
from ingestion.cells import cell_at, resolve
from ingestion.classification import classify_file, month_number, resolve_release_key
from ingestion.errors import (
    FolderHierarchyError,
    IngestionError,
    InvalidAddressError,
    RemoteReadError,
    SheetNotFoundError,
    ValueNormalizationError,
)
from ingestion.kpi_builder import KpiBuilder, KpiRecord
from ingestion.normalizer import NormalizationWarning, ValueNormalizer, normalize_numeric
from ingestion.readers import DLSReader, EstimationReader, TestReportReader, WorkbookReader
from ingestion.scanners import (
    HeaderRowPhaseDetector,
    OpenPointsScanner,
    PhaseCategoryScanner,
    PhaseScanResult,
    ValueScanPhaseDetector,
)
from ingestion.types import (
    DiscoveredFile,
    FileDiscovery,
    FileType,
    MonthFolder,
    ReleaseKey,
    WorkbookSource,
)

__all__ = [
    "DLSReader",
    "DiscoveredFile",
    "EstimationReader",
    "FileDiscovery",
    "FileType",
    "FolderHierarchyError",
    "HeaderRowPhaseDetector",
    "IngestionError",
    "InvalidAddressError",
    "KpiBuilder",
    "KpiRecord",
    "MonthFolder",
    "NormalizationWarning",
    "OpenPointsScanner",
    "PhaseCategoryScanner",
    "PhaseScanResult",
    "ReleaseAssembler",
    "ReleaseKey",
    "ReleaseState",
    "RemoteReadError",
    "SheetNotFoundError",
    "TestReportReader",
    "ValueNormalizationError",
    "ValueNormalizer",
    "ValueScanPhaseDetector",
    "WorkbookReader",
    "WorkbookSource",
    "cell_at",
    "classify_file",
    "month_number",
    "normalize_numeric",
    "resolve",
    "resolve_release_key",
]
