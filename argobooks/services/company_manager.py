from __future__ import annotations
import gzip
import json
import logging
import os
from typing import Optional

from PySide6 import QtCore

from .. import config
from ..domain.company_data import CompanyData, CompanySettings
from ..errors import CompanyFileError, NoCompanyOpenError

logger = logging.getLogger(__name__)

FILE_FORMAT_VERSION = 1


def ensure_parent_dir(path: str) -> None:
    parent = os.path.dirname(path)
    if parent:
        os.makedirs(parent, exist_ok=True)


def write_company_file(path: str, company: CompanyData) -> None:
    payload = {"version": FILE_FORMAT_VERSION, "company": company.to_dict()}
    ensure_parent_dir(path)
    tmp_path = f"{path}.tmp"
    try:
        with gzip.open(tmp_path, "wt", encoding="utf-8") as f:
            json.dump(payload, f)
        os.replace(tmp_path, path)
    except (OSError, TypeError, ValueError) as e:
        _discard_partial(tmp_path)
        raise CompanyFileError(path, f"Could not write company file ({e})") from e


def _discard_partial(tmp_path: str) -> None:
    try:
        if os.path.exists(tmp_path):
            os.remove(tmp_path)
    except OSError as e:
        logger.warning(f"Could not remove partial company file {tmp_path}: {e}")


def read_company_file(path: str) -> CompanyData:
    if not os.path.isfile(path):
        raise CompanyFileError(path, "Company file not found")
    try:
        with gzip.open(path, "rt", encoding="utf-8") as f:
            payload = json.load(f)
    except (OSError, EOFError, ValueError) as e:
        raise CompanyFileError(path, f"Company file is unreadable ({e})") from e
    if not isinstance(payload, dict) or not isinstance(payload.get("company"), dict):
        raise CompanyFileError(path, "Company file is missing company data")
    try:
        return CompanyData.from_dict(payload["company"])
    except (AttributeError, KeyError, TypeError, ValueError) as e:
        raise CompanyFileError(path, f"Company file is corrupt ({e})") from e


class CompanyManager(QtCore.QObject):
    """
    Owns the currently open company and its file on disk.
    """
    company_opened = QtCore.Signal(object)  # CompanyData
    company_closed = QtCore.Signal()
    company_saved = QtCore.Signal(str)  # path
    company_changed = QtCore.Signal()  # any in-memory edit was flagged

    def __init__(self):
        super().__init__()
        self._company: Optional[CompanyData] = None
        self._path: Optional[str] = None

    @property
    def company_data(self) -> Optional[CompanyData]:
        return self._company

    @property
    def current_path(self) -> Optional[str]:
        return self._path

    @property
    def is_company_open(self) -> bool:
        return self._company is not None

    @property
    def has_unsaved_changes(self) -> bool:
        return self._company is not None and self._company.changes_made

    def require_company(self) -> CompanyData:
        if self._company is None:
            raise NoCompanyOpenError()
        return self._company

    def create_company(self, name: str, currency: str = config.DEFAULT_CURRENCY, path: Optional[str] = None) -> CompanyData:
        company = CompanyData(settings=CompanySettings(company_name=name.strip(), currency=currency.upper()))
        self._set_company(company, path)
        if path:
            self.save_company(path)
        logger.info(f"Created company '{company.settings.company_name}'")
        return company

    def open_company(self, path: str) -> CompanyData:
        company = read_company_file(path)
        company.mark_as_saved()
        self._set_company(company, path)
        logger.info(f"Opened company '{company.settings.company_name}' from {path}")
        return company

    def save_company(self, path: Optional[str] = None) -> str:
        company = self.require_company()
        target = path or self._path
        if not target:
            raise CompanyFileError("", "No file chosen for this company")
        if not target.endswith(config.COMPANY_FILE_EXTENSION):
            target = f"{target}{config.COMPANY_FILE_EXTENSION}"
        write_company_file(target, company)
        company.mark_as_saved()
        self._path = target
        logger.info(f"Saved company to {target}")
        self.company_saved.emit(target)
        return target

    def close_company(self) -> None:
        if self._company is None:
            return
        self._company = None
        self._path = None
        self.company_closed.emit()

    def mark_modified(self) -> None:
        company = self.require_company()
        company.mark_as_modified()
        self.company_changed.emit()

    def _set_company(self, company: CompanyData, path: Optional[str]) -> None:
        self._company = company
        self._path = path
        self.company_opened.emit(company)
