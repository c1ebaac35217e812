"""Orchestrateur de l'export FEC : factures → écritures → fichier."""

from __future__ import annotations

import datetime
import fnmatch
import logging
import unicodedata
from io import BytesIO
from pathlib import Path

from craftly_ops.config.loader import AppConfig
from craftly_ops.controls.lettrage_checker import LettrageChecker
from craftly_ops.controls.totals_checker import TotalsChecker
from craftly_ops.engine import project
from craftly_ops.exporters import excel
from craftly_ops.exporters.fec import build_filename, serialize, write_fec
from craftly_ops.models import (
    AccountingEntry,
    Anomaly,
    CraftlyOpsError,
    DataFetchError,
    FECExport,
    FECExportRequest,
    Invoice,
    InvalidPeriod,
)
from craftly_ops.siren import normalize_siren
from craftly_ops.sources import CsvInvoiceSource, InvoiceSource

logger = logging.getLogger(__name__)


class ExportOrchestrator:
    """Orchestre l'export : validation → lecture → écritures → FEC."""

    def generate_export(
        self,
        request: FECExportRequest,
        source: InvoiceSource,
        config: AppConfig,
    ) -> FECExport:
        """Exécute un export complet, sans effet de bord hors lecture de la source.

        Raises:
            InvalidSiren: SIREN invalide (aucune lecture n'est effectuée).
            InvalidPeriod: date de début postérieure à la date de fin.
            DataFetchError: lecture des factures impossible.
            InvalidAmount: montant de facture invalide.
        """
        siren = normalize_siren(request.siren)
        if request.start_date > request.end_date:
            raise InvalidPeriod(
                f"La date de début ({request.start_date.isoformat()}) doit être "
                f"antérieure à la date de fin ({request.end_date.isoformat()})"
            )

        tz = config.tzinfo
        invoices = self._fetch(source, request, tz)

        entries = project(invoices, config, tz)
        content = serialize(entries)
        filename = build_filename(siren, request.end_date)

        anomalies = self._run_controls(invoices, entries, config)

        logger.info("Export %s : %d factures, %d écritures", filename, len(invoices), len(entries))
        return FECExport(content=content, filename=filename, entries=entries, anomalies=anomalies)

    def run(
        self,
        input_dir: Path,
        output_dir: Path,
        request: FECExportRequest,
        config: AppConfig,
        with_excel: bool = False,
    ) -> FECExport:
        """Exporte depuis les CSV d'un répertoire et écrit le fichier FEC dans *output_dir*."""
        files = self._detect_files(input_dir, config.source.files)
        source = CsvInvoiceSource(files, config.source)
        result = self.generate_export(request, source, config)

        output_dir.mkdir(parents=True, exist_ok=True)
        write_fec(result.content, output_dir / result.filename)
        if with_excel:
            excel_path = output_dir / result.filename.replace(".txt", ".xlsx")
            excel.export(result.entries, result.anomalies, excel_path)
            logger.info("Classeur Excel écrit : %s", excel_path)

        excel.print_summary(result.entries, result.anomalies, result.filename)
        return result

    def run_from_buffers(
        self,
        files: dict[str, bytes],
        request: FECExportRequest,
        config: AppConfig,
    ) -> FECExport:
        """Exécute l'export à partir de fichiers en mémoire.

        Args:
            files: Dictionnaire {nom_fichier: contenu_bytes}.
            request: Période et SIREN.
            config: Configuration de l'application.
        """
        dispatched = self._detect_files_from_buffers(files, config.source.files)
        source = CsvInvoiceSource(dispatched, config.source)
        return self.generate_export(request, source, config)

    @staticmethod
    def _fetch(
        source: InvoiceSource, request: FECExportRequest, tz: datetime.tzinfo
    ) -> list[Invoice]:
        try:
            invoices = source.fetch_invoices(request.start_date, request.end_date, tz)
        except CraftlyOpsError:
            raise
        except Exception as e:
            raise DataFetchError(f"Erreur lors de la récupération des factures : {e}") from e
        logger.info("%d factures à exporter", len(invoices))
        return invoices

    @staticmethod
    def _run_controls(
        invoices: list[Invoice],
        entries: list[AccountingEntry],
        config: AppConfig,
    ) -> list[Anomaly]:
        totals_anomalies = TotalsChecker.check(invoices)
        logger.info("TotalsChecker: %d anomalies détectées", len(totals_anomalies))

        lettrage_anomalies = LettrageChecker.check(entries, config)
        logger.info("LettrageChecker: %d anomalies détectées", len(lettrage_anomalies))

        return totals_anomalies + lettrage_anomalies

    @staticmethod
    def _detect_files(input_dir: Path, file_patterns: dict[str, str]) -> dict[str, Path | BytesIO]:
        """Détecte les fichiers CSV dans input_dir via les patterns glob (premier par ordre alphabétique)."""
        found: dict[str, Path | BytesIO] = {}
        for file_key, pattern in file_patterns.items():
            matches = sorted(input_dir.glob(pattern))
            if not matches:
                # macOS returns NFD filenames; retry with NFD-normalized pattern
                nfd_pattern = unicodedata.normalize("NFD", pattern)
                if nfd_pattern != pattern:
                    matches = sorted(input_dir.glob(nfd_pattern))
            if matches:
                found[file_key] = matches[0]
            else:
                logger.info("Aucun fichier '%s' trouvé dans %s", pattern, input_dir)
        return found

    @staticmethod
    def _detect_files_from_buffers(
        files: dict[str, bytes],
        file_patterns: dict[str, str],
    ) -> dict[str, Path | BytesIO]:
        """Dispatch des fichiers en mémoire via fnmatch sur les patterns (basename uniquement)."""
        found: dict[str, Path | BytesIO] = {}
        for file_key, pattern in file_patterns.items():
            matched = sorted(
                (filename, content)
                for filename, content in files.items()
                if fnmatch.fnmatch(filename.split("/")[-1], pattern)
            )
            if matched:
                found[file_key] = BytesIO(matched[0][1])
        return found
