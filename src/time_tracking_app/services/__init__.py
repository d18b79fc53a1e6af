from .admin_service import AdminService
from .qr_codes import generate_student_qr
from .qr_scanner import QRScanner, decode_image
from .report_service import ReportService, default_export_filename
from .scan_classifier import classify
from .scan_service import ScanHandler, parse_payload
from .session_pairing import pair_and_sum
from .student_service import StudentService
from .time_record_service import TimeRecordService

__all__ = [
	"AdminService",
	"QRScanner",
	"ReportService",
	"ScanHandler",
	"StudentService",
	"TimeRecordService",
	"classify",
	"decode_image",
	"default_export_filename",
	"generate_student_qr",
	"pair_and_sum",
	"parse_payload",
]
