"""
Error taxonomy for the drafting session.

    StrukError
    ├── ValidationError        inline, cleared by the next edit
    │   ├── EmptyName
    │   └── InvalidPrice
    ├── SubmissionError        banner, draft preserved
    │   ├── EmptyDraft
    │   ├── SubmissionRejected
    │   └── SubmissionFailed
    ├── ExportError            banner, state untouched
    │   ├── NothingToExport
    │   ├── RegionUnavailable
    │   ├── AssetTaintError
    │   ├── ExportTimeout
    │   ├── ExportWriteError
    │   └── RenderFailed
    └── OperationInProgress

Every error carries a ``user_message`` suitable for the error banner.
"""

from __future__ import annotations

from typing import Any

from .config import ERROR_DETAIL_MAX_CHARS


def truncate(text: str, limit: int = ERROR_DETAIL_MAX_CHARS) -> str:
	return (text or "")[:limit]


class StrukError(Exception):
	code = "STRUK_ERROR"
	user_message = "Terjadi kesalahan"

	def __init__(self, message: str, details: dict[str, Any] | None = None):
		self.message = message
		self.details = details or {}
		super().__init__(message)

	def __str__(self) -> str:
		if self.details:
			return f"{self.message} | Details: {self.details}"
		return self.message


class ValidationError(StrukError):
	code = "VALIDATION_ERROR"


class EmptyName(ValidationError):
	code = "EMPTY_NAME"
	user_message = "Nama item wajib diisi"

	def __init__(self) -> None:
		super().__init__("item name is required")


class InvalidPrice(ValidationError):
	code = "INVALID_PRICE"
	user_message = "Harga harus angka"

	def __init__(self, value: Any):
		super().__init__("price must be a finite number", {"value": repr(value)})


class SubmissionError(StrukError):
	code = "SUBMISSION_ERROR"

	@property
	def user_message(self) -> str:  # type: ignore[override]
		return f"Gagal membuat struk: {truncate(self.message)}"


class EmptyDraft(SubmissionError):
	code = "EMPTY_DRAFT"
	user_message = "Tambahkan minimal satu item"

	def __init__(self) -> None:
		super().__init__("draft has no items")


class SubmissionRejected(SubmissionError):
	"""The service answered with a non-2xx status."""

	code = "SUBMISSION_REJECTED"

	def __init__(self, detail: str, status_code: int | None = None):
		self.detail = truncate(detail)
		self.status_code = status_code
		super().__init__(self.detail, {"status_code": status_code})


class SubmissionFailed(SubmissionError):
	"""The request never produced a usable answer (network or decode)."""

	code = "SUBMISSION_FAILED"

	def __init__(self, message: str):
		super().__init__(truncate(message))


class ExportError(StrukError):
	code = "EXPORT_ERROR"
	user_message = "Gagal mengunduh struk. Pastikan logo bisa dimuat dan coba lagi."


class NothingToExport(ExportError):
	code = "NOTHING_TO_EXPORT"
	user_message = "Buat struk terlebih dahulu"

	def __init__(self) -> None:
		super().__init__("no confirmed receipt to export")


class RegionUnavailable(ExportError):
	code = "REGION_UNAVAILABLE"
	user_message = "Area struk tidak tersedia. Muat ulang pratinjau dan coba lagi."

	def __init__(self, reason: str = "receipt region is not mounted"):
		super().__init__(reason)


class AssetTaintError(ExportError):
	code = "ASSET_TAINTED"

	def __init__(self, url: str, reason: str):
		super().__init__(f"asset not readable: {url}", {"url": url, "reason": reason})


class ExportWriteError(ExportError):
	code = "EXPORT_WRITE_FAILED"
	user_message = "Gagal menyimpan struk. Periksa folder unduhan dan coba lagi."

	def __init__(self, path: str, reason: str):
		super().__init__(f"cannot write snapshot: {path}", {"path": path, "reason": reason})


class RenderFailed(ExportError):
	code = "RENDER_FAILED"
	user_message = "Gagal menggambar struk. Periksa font dan coba lagi."

	def __init__(self, reason: str):
		super().__init__(f"cannot rasterize receipt: {reason}", {"reason": reason})


class ExportTimeout(ExportError):
	code = "EXPORT_TIMEOUT"
	user_message = "Logo terlalu lama dimuat. Coba lagi."

	def __init__(self, url: str, timeout_secs: float):
		super().__init__(
			f"asset fetch exceeded {timeout_secs:g}s: {url}",
			{"url": url, "timeout_secs": timeout_secs},
		)


class OperationInProgress(StrukError):
	code = "OPERATION_IN_PROGRESS"
	user_message = "Proses sebelumnya masih berjalan"

	def __init__(self, operation: str):
		self.operation = operation
		super().__init__(f"{operation} already in progress", {"operation": operation})
