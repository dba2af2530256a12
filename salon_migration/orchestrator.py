"""
Import orchestrator - coordinates a bulk import session.

A session walks through analysis, validation, confirmation and import:

1. Analyze: classify uploaded files, parse them and map rows to entities
2. Validate: check mapped records against rules and the current store
3. Confirm: pick a merge strategy; critical findings block unless forced
4. Import: write entities phase by phase in fixed-size batches
"""

import asyncio
import logging
from datetime import datetime
from typing import Any, Callable, Dict, Iterable, Iterator, List, Optional, Set

from .events import BatchPacer, EventEmitter, ProgressEmitter
from .exceptions import ImportBlockedError, ParseError, PreflightError, SessionStateError, StorageError
from .extractors import detect_format, get_extractor
from .models.record import (
    ClassifiedFile,
    EntityDataset,
    FileOutcome,
    FileStatus,
    MappedRecord,
    ParsedRecord,
    SourceFile,
)
from .models.schema import EntitySchema
from .models.session import (
    ImportConfig,
    ImportOptions,
    ImportResult,
    MergeStrategy,
    ResultStatus,
    SessionResult,
    SessionStatus,
)
from .models.validation import Severity, ValidationSummary
from .services.classifier import FileClassifier
from .services.history import ImportHistory
from .services.mapper import FieldMapper
from .services.merger import ConflictResolver, PlannedUpdate
from .services.schema_registry import EntityRegistry
from .services.triage import find_incomplete
from .services.validator import ValidationEngine
from .storage.base import BaseStorage, Row
from .utils import decode_bytes, is_blank, normalize_name

logger = logging.getLogger(__name__)


class ImportSession:
    """
    One bulk import, from uploaded files to the final report.

    State moves idle -> analisando -> validando -> importando -> concluido,
    or to cancelado when a running import is cancelled. Each state only
    accepts the operations that make sense in it; anything else raises
    SessionStateError.
    """

    def __init__(
        self,
        storage: BaseStorage,
        config: Optional[ImportConfig] = None,
        registry: Optional[EntityRegistry] = None,
        classifier: Optional[FileClassifier] = None,
    ):
        """
        Initialize a session.

        Args:
            storage: Backend the records are written to
            config: Import configuration (defaults apply when omitted)
            registry: Entity schemas (built-ins when omitted)
            classifier: Filename classifier
        """
        self.storage = storage
        self.config = config or ImportConfig()
        self.registry = registry or EntityRegistry(self.config.schemas_dir)
        self.classifier = classifier or FileClassifier()
        self.mapper = FieldMapper(self.registry)
        self.validator = ValidationEngine(self.registry, self.config.report_dropped_records)
        self.resolver = ConflictResolver()
        self.history = ImportHistory(storage)

        self.status = SessionStatus.IDLE
        self.options = ImportOptions.from_dict(self.config.options.to_dict())
        self.strategy: Optional[MergeStrategy] = None
        self.files: List[ClassifiedFile] = []
        self.sources: List[SourceFile] = []
        self.outcomes: Dict[str, FileOutcome] = {}
        self.datasets: Dict[str, EntityDataset] = {}
        self.summary: Optional[ValidationSummary] = None
        self.result = SessionResult()

        self.progress = ProgressEmitter()
        self.data_changed = EventEmitter()
        self._pacer = BatchPacer(self.config.batch_delay)
        self._confirmed = False
        self._cancel_requested = False
        self._data_changed_sent = False
        self._imported_clients: List[Row] = []
        self._backups: Set[str] = set()

    @property
    def id(self) -> str:
        return self.result.id

    def subscribe(self, callback: Callable) -> Callable[[], None]:
        """Receive a ProgressEvent after every step and batch."""
        return self.progress.subscribe(callback)

    def on_data_changed(self, callback: Callable) -> Callable[[], None]:
        """Receive one call (with the SessionResult) when an import completes."""
        return self.data_changed.subscribe(callback)

    def _require(self, operation: str, *allowed: SessionStatus) -> None:
        if self.status not in allowed:
            raise SessionStateError(operation, self.status.value)

    # ------------------------------------------------------------------
    # Analysis
    # ------------------------------------------------------------------

    def analyze(
        self,
        files: Iterable[SourceFile],
        options: Optional[ImportOptions] = None,
        selected: Optional[Iterable[str]] = None,
        entity_overrides: Optional[Dict[str, str]] = None,
    ) -> List[ClassifiedFile]:
        """
        Classify, parse and map the uploaded files.

        Args:
            files: Uploaded files
            options: Session options (``completar_campos_vazios`` is applied while mapping)
            selected: Names of the files to import; defaults to every recognized file
            entity_overrides: File name -> entity, for files the classifier did not recognize

        Returns:
            Classified files in import order
        """
        self._require("analyze", SessionStatus.IDLE)
        self.status = SessionStatus.ANALISANDO
        if options is not None:
            self.options = options

        logger.info("=== PHASE 1: ANALYSIS ===")
        self.sources = list(files)
        self.files = self.classifier.classify_all(self.sources)
        self._apply_selection(selected, entity_overrides or {})

        for classified in self.files:
            outcome = FileOutcome(
                name=classified.name,
                entity_type=classified.entity_type,
                table=classified.target_table,
            )
            self.outcomes[classified.name] = outcome

            if not classified.selected:
                outcome.status = FileStatus.IGNORADO
                outcome.message = "Arquivo não selecionado" if classified.known else "Tipo de arquivo não reconhecido"
                if not classified.known:
                    self._suggest_entity(classified)
                continue

            self._analyze_file(classified, outcome)

        total = sum(len(d) for d in self.datasets.values())
        logger.info(
            f"Analysis finished: {len(self.files)} files, {len(self.datasets)} entities, {total} records"
        )
        return self.files

    def _apply_selection(self, selected: Optional[Iterable[str]], overrides: Dict[str, str]) -> None:
        for classified in self.files:
            entity = overrides.get(classified.name)
            if entity:
                schema = self.registry.get(entity)
                classified.entity_type = entity
                classified.target_table = schema.table if schema else entity
                classified.import_order = self.classifier.order_of(classified.target_table)
                classified.selected = True
            elif not classified.known and self._is_backup(classified):
                # Multi-table backups are recognized by content, not by name
                classified.selected = True
                self._backups.add(classified.name)

        if selected is not None:
            wanted = set(selected)
            for classified in self.files:
                importable = classified.known or classified.name in self._backups
                classified.selected = classified.name in wanted and importable

        self.files.sort(key=lambda c: c.import_order)

    @staticmethod
    def _is_backup(classified: ClassifiedFile) -> bool:
        text = decode_bytes(classified.source.content)
        format_name = detect_format(classified.name, text)
        if format_name == "sql":
            return True
        return format_name == "json" and text.lstrip().startswith("{")

    def _suggest_entity(self, classified: ClassifiedFile) -> None:
        """Peek at the headers of an unknown file to suggest an entity."""
        text = decode_bytes(classified.source.content)
        first_line = next((line for line in text.splitlines() if line.strip()), "")
        headers = [h.strip().strip('"') for h in first_line.replace(";", ",").replace("\t", ",").split(",")]
        classified.suggested_entity = self.classifier.suggest_from_headers(headers)
        if classified.suggested_entity:
            logger.info(f"{classified.name}: looks like {classified.suggested_entity}")

    def _analyze_file(self, classified: ClassifiedFile, outcome: FileOutcome) -> None:
        source = classified.source
        text = decode_bytes(source.content)
        format_name = detect_format(source.name, text)
        extractor = get_extractor(format_name)

        try:
            extraction = extractor.extract(source)
        except ParseError as e:
            outcome.status = FileStatus.ERRO
            outcome.message = str(e)
            logger.error(f"Failed to parse {source.name}: {e}")
            return

        if extraction.errors:
            outcome.message = "; ".join(e["message"] for e in extraction.errors[:3])

        if extraction.is_multi_table:
            self._map_sections(classified, outcome, extraction.sections)
            return

        entity = classified.entity_type
        if entity is None:
            outcome.status = FileStatus.IGNORADO
            outcome.message = "Tipo de arquivo não reconhecido"
            return
        if not self.registry.is_supported(entity):
            outcome.status = FileStatus.IGNORADO
            outcome.message = "Tabela não suportada ainda"
            logger.warning(f"{source.name}: table {classified.target_table} is not supported yet")
            return

        self._map_rows(source.name, entity, extraction.records, outcome)

    def _map_sections(
        self,
        classified: ClassifiedFile,
        outcome: FileOutcome,
        sections: Dict[str, List[ParsedRecord]],
    ) -> None:
        """Map each section of a JSON backup or SQL dump to its entity."""
        skipped = []
        for key, rows in sections.items():
            entity = self.registry.entity_for_key(key)
            if entity is None:
                skipped.append(key)
                continue
            self._map_rows(classified.name, entity, rows, outcome)

        if skipped:
            logger.warning(f"{classified.name}: skipped unsupported sections {', '.join(skipped)}")
            outcome.message = f"Seções não suportadas: {', '.join(skipped)}"
        if not outcome.registros and not outcome.descartados:
            outcome.status = FileStatus.IGNORADO

    def _map_rows(self, filename: str, entity: str, rows: List[ParsedRecord], outcome: FileOutcome) -> None:
        mapping = self.mapper.map_records(rows, entity, fill_empty=self.options.completar_campos_vazios)
        schema = self.registry.get(entity)

        dataset = self.datasets.get(entity)
        if dataset is None:
            dataset = EntityDataset(
                entity_type=entity,
                table=schema.table,
                import_order=self.classifier.order_of(schema.table),
            )
            self.datasets[entity] = dataset

        dataset.records.extend(mapping.records)
        dataset.descartados += len(mapping.dropped)
        if filename not in dataset.files:
            dataset.files.append(filename)

        outcome.registros += len(mapping.records)
        outcome.descartados += len(mapping.dropped)

    # ------------------------------------------------------------------
    # Validation and confirmation
    # ------------------------------------------------------------------

    def _preflight(self) -> None:
        if not any(c.selected for c in self.files) or not self.datasets:
            raise PreflightError("Nenhum arquivo selecionado para importação")
        if sum(len(d) for d in self.datasets.values()) == 0:
            raise PreflightError("Nenhum registro válido encontrado nos arquivos selecionados")

    async def validate(self) -> ValidationSummary:
        """Validate the analyzed records. May be called again before confirming."""
        self._require("validate", SessionStatus.ANALISANDO, SessionStatus.VALIDANDO)
        self._preflight()
        self.status = SessionStatus.VALIDANDO

        logger.info("=== PHASE 2: VALIDATION ===")
        await self.progress.progress("validacao", 0, 1, "Validando registros")

        existing = await self._existing_names()
        self.summary = self.validator.validate(
            self.ordered_datasets(),
            options=self.options,
            existing=existing,
            files=list(self.outcomes.values()),
        )
        self.result.validation = self.summary

        await self.progress.progress(
            "validacao", 1, 1,
            f"{self.summary.total_criticos} críticos, {self.summary.total_avisos} avisos",
        )
        return self.summary

    async def _existing_names(self) -> Dict[str, Set[str]]:
        """Names already stored for every entity referenced by the datasets."""
        referenced = {
            ref.entity
            for entity in self.datasets
            for ref in self.registry.get(entity).references
        }
        names: Dict[str, Set[str]] = {}
        for entity in sorted(referenced):
            schema = self.registry.get(entity)
            if schema is None:
                continue
            response = await self.storage.fetch_all(schema.table, columns=f"id,{schema.name_field}")
            if not response.ok:
                message = f"Não foi possível consultar {schema.table}: {response.error_message}"
                logger.warning(message)
                self.result.warnings.append(message)
                continue
            names[entity] = {
                normalize_name(row.get(schema.name_field))
                for row in response.data or []
                if not is_blank(row.get(schema.name_field))
            }
        return names

    def confirm(self, strategy: Optional[MergeStrategy] = None, force: bool = False) -> None:
        """
        Accept the validation result and choose how duplicates are handled.

        Args:
            strategy: Merge strategy; when omitted the configured default is
                used if ``mesclar_duplicatas`` is on, otherwise duplicates
                are only flagged and skipped
            force: Import even though critical findings exist

        Raises:
            ImportBlockedError: Critical findings exist and force is False
        """
        self._require("confirm", SessionStatus.VALIDANDO)
        if self.summary is None:
            raise SessionStateError("confirm", "not validated")

        criticos = self.summary.total_criticos
        if criticos and not force:
            raise ImportBlockedError(
                criticos,
                [f.message for f in self.summary.by_severity(Severity.CRITICAL)],
            )

        if criticos:
            self.result.forced = True
            self.result.warnings.append(
                f"Importação forçada com {criticos} problema(s) crítico(s) não resolvido(s)"
            )
            logger.warning(f"Import forced past {criticos} critical findings")

        if strategy is None and self.options.mesclar_duplicatas:
            strategy = self.config.default_strategy
        self.strategy = strategy
        self.result.strategy = strategy
        self._confirmed = True

    def cancel(self) -> None:
        """Ask a running import to stop after the current batch."""
        self._require("cancel", SessionStatus.IMPORTANDO)
        self._cancel_requested = True
        logger.warning(f"Cancellation requested for session {self.id}")

    @property
    def cancel_requested(self) -> bool:
        return self._cancel_requested

    def ordered_datasets(self) -> List[EntityDataset]:
        """Datasets in import phase order."""
        order = self.registry.ordered(self.datasets.keys(), self.classifier.order_of)
        return [self.datasets[entity] for entity in order]

    # ------------------------------------------------------------------
    # Import
    # ------------------------------------------------------------------

    async def run(self) -> SessionResult:
        """
        Import every dataset and return the session result.

        Entities are written in phase order: categories and suppliers,
        clients and professionals, products and services, appointments,
        then sales. A failed batch never aborts the session.
        """
        self._require("run", SessionStatus.VALIDANDO)
        if not self._confirmed:
            raise SessionStateError("run", "not confirmed")
        self._preflight()
        if not await self.storage.validate_connection():
            raise StorageError("Não foi possível conectar ao banco de dados")

        self.status = SessionStatus.IMPORTANDO
        self.result.status = self.status
        self.result.started_at = datetime.utcnow()
        logger.info(f"=== PHASE 3: IMPORT (session {self.id}) ===")

        if self.config.record_import_log:
            self.result.log_id = await self.history.start(
                [c.source for c in self.files if c.selected]
            )

        datasets = self.ordered_datasets()
        for index, dataset in enumerate(datasets, start=1):
            if self._cancel_requested:
                break
            logger.info(f"--- {dataset.entity_type} ({index}/{len(datasets)}) ---")
            await self._import_dataset(dataset)

        logger.info("=== PHASE 4: FINALIZE ===")
        self.result.incomplete_clients = find_incomplete(self._imported_clients)
        self._settle_file_outcomes()

        self.status = SessionStatus.CANCELADO if self._cancel_requested else SessionStatus.CONCLUIDO
        self.result.status = self.status
        self.result.files = list(self.outcomes.values())
        self.result.completed_at = datetime.utcnow()

        if self.result.log_id is not None:
            await self.history.finish(self.result.log_id, self.result)

        await self.progress.progress(
            self.status.value,
            self.result.total_importados + self.result.total_atualizados,
            sum(len(d) for d in datasets),
            f"{self.result.total_importados} importados, {self.result.total_erros} erros",
        )

        if self.status == SessionStatus.CONCLUIDO and not self._data_changed_sent:
            self._data_changed_sent = True
            await self.data_changed.emit(self.result)

        logger.info(
            f"Session {self.id} {self.status.value}: "
            f"{self.result.total_importados} imported, {self.result.total_atualizados} updated, "
            f"{self.result.total_duplicados} duplicates, {self.result.total_erros} errors"
        )
        return self.result

    async def _import_dataset(self, dataset: EntityDataset) -> ImportResult:
        schema = self.registry.get(dataset.entity_type)
        entity_result = self.result.result_for(
            dataset.entity_type, dataset.table, self.config.max_display_errors
        )
        entity_result.started_at = datetime.utcnow()
        entity_result.descartados = dataset.descartados

        records = await self._resolve_references(schema, dataset.records, entity_result)

        existing: List[Row] = []
        if schema.key_fields and records:
            response = await self.storage.fetch_all(dataset.table)
            if not response.ok:
                entity_result.add_errors(
                    len(records),
                    f"Falha ao consultar registros existentes de {dataset.table}: {response.error_message}",
                )
                entity_result.completed_at = datetime.utcnow()
                return entity_result
            existing = response.data or []

        plan = self.resolver.resolve(existing, records, self.strategy, schema)
        entity_result.duplicados += len(plan.to_skip)
        total = len(plan.to_insert) + len(plan.to_update)

        stopped = await self._insert_batches(schema, plan.to_insert, entity_result, total)
        if not stopped and not self._cancel_requested:
            await self._apply_updates(schema, plan.to_update, entity_result, total)

        entity_result.completed_at = datetime.utcnow()
        logger.info(
            f"{dataset.entity_type}: {entity_result.importados} imported, "
            f"{entity_result.atualizados} updated, {entity_result.duplicados} duplicates, "
            f"{entity_result.erros} errors"
        )
        return entity_result

    async def _reference_ids(self, schema: EntitySchema) -> Dict[str, Dict[str, Any]]:
        """Normalized name -> id of every referenced entity that needs an id."""
        ids: Dict[str, Dict[str, Any]] = {}
        for ref in schema.references:
            if not ref.id_field or ref.entity in ids:
                continue
            target = self.registry.get(ref.entity)
            if target is None:
                continue
            response = await self.storage.fetch_all(target.table, columns=f"id,{target.name_field}")
            if not response.ok:
                logger.warning(f"Could not load {target.table} ids: {response.error_message}")
                ids[ref.entity] = {}
                continue
            lookup: Dict[str, Any] = {}
            for row in response.data or []:
                name = normalize_name(row.get(target.name_field))
                if name:
                    lookup.setdefault(name, row.get("id"))
            ids[ref.entity] = lookup
        return ids

    async def _resolve_references(
        self,
        schema: EntitySchema,
        records: List[MappedRecord],
        entity_result: ImportResult,
    ) -> List[MappedRecord]:
        """
        Replace referenced names with the ids now in the store.

        Records whose required reference cannot be resolved are counted as
        errors and left out of the import.
        """
        if not any(ref.id_field for ref in schema.references):
            return list(records)

        lookups = await self._reference_ids(schema)
        resolved = []
        for record in records:
            missing = None
            for ref in schema.references:
                if not ref.id_field:
                    continue
                value = record.get(ref.source_field)
                if is_blank(value):
                    if ref.required:
                        missing = f"Linha {record.position + 1}: {ref.source_field} não informado"
                    continue
                record_id = lookups.get(ref.entity, {}).get(normalize_name(value))
                if record_id is not None:
                    record.data[ref.id_field] = record_id
                elif ref.required:
                    missing = f"Linha {record.position + 1}: {ref.entity} '{value}' não encontrado"

            if missing:
                entity_result.add_errors(1, missing)
                continue
            resolved.append(record)
        return resolved

    @staticmethod
    def _payload(schema: EntitySchema, data: Dict[str, Any]) -> Row:
        """Row sent to storage: names replaced by ids are left out."""
        replaced = {ref.source_field for ref in schema.references if ref.id_field}
        return {k: v for k, v in data.items() if k not in replaced}

    @staticmethod
    def _batch_iterator(items: List[Any], batch_size: int) -> Iterator[List[Any]]:
        """Iterate over items in batches."""
        for i in range(0, len(items), batch_size):
            yield items[i:i + batch_size]

    async def _insert_batches(
        self,
        schema: EntitySchema,
        records: List[MappedRecord],
        entity_result: ImportResult,
        total: int,
    ) -> bool:
        """
        Insert records in batches, one call per batch, in order.

        Returns:
            True when the import of this entity was stopped by a failed
            batch (``ignorar_registros_com_erro`` off)
        """
        processed = 0
        for number, batch in enumerate(self._batch_iterator(records, self.config.batch_size), start=1):
            if self._cancel_requested:
                logger.info(f"{schema.name}: cancelled before batch {number}")
                return False

            await self._pacer.wait()
            response = await self.storage.insert(schema.table, [self._payload(schema, r.data) for r in batch])
            first, last = batch[0].position + 1, batch[-1].position + 1
            processed += len(batch)

            if response.ok:
                entity_result.importados += len(batch)
                if schema.table == "clientes":
                    self._imported_clients.extend(response.data or [])
            else:
                entity_result.add_errors(
                    len(batch), f"Lote {number} (linhas {first}-{last}): {response.error_message}"
                )
                logger.error(f"{schema.name} batch {number} failed: {response.error_message}")

                if not self.options.ignorar_registros_com_erro:
                    remaining = len(records) - processed
                    if remaining:
                        entity_result.add_errors(
                            remaining,
                            f"Importação de {schema.name} interrompida após erro no lote {number}",
                        )
                    return True

            await self.progress.progress(
                schema.name, processed, total, f"Lote {number}: {entity_result.importados} importados"
            )
            # Let cancel requests and API polls in between batches
            await asyncio.sleep(0)

        return False

    async def _apply_updates(
        self,
        schema: EntitySchema,
        updates: List[PlannedUpdate],
        entity_result: ImportResult,
        total: int,
    ) -> None:
        """Write merged values onto existing rows, one row per call."""
        done = total - len(updates)
        for batch in self._batch_iterator(updates, self.config.batch_size):
            if self._cancel_requested:
                return
            await self._pacer.wait()

            for update in batch:
                values = self._payload(schema, update.values)
                if not values:
                    entity_result.duplicados += 1
                    continue
                response = await self.storage.update(schema.table, update.record_id, values)
                if response.ok:
                    entity_result.atualizados += 1
                    if schema.table == "clientes":
                        self._imported_clients.extend(response.data or [])
                else:
                    entity_result.add_errors(
                        1,
                        f"Linha {update.record.position + 1}: falha ao atualizar "
                        f"{update.record_id}: {response.error_message}",
                    )

            done += len(batch)
            await self.progress.progress(
                schema.name, done, total, f"{entity_result.atualizados} atualizados"
            )
            await asyncio.sleep(0)

    def _settle_file_outcomes(self) -> None:
        """Mark pending files by how their entities fared."""
        for outcome in self.outcomes.values():
            if outcome.status != FileStatus.PENDENTE:
                continue
            entities = [d.entity_type for d in self.datasets.values() if outcome.name in d.files]
            results = [self.result.results[e] for e in entities if e in self.result.results]
            if not results:
                continue
            if any(r.status == ResultStatus.ERRO for r in results):
                outcome.status = FileStatus.ERRO
            else:
                outcome.status = FileStatus.SUCESSO

    def to_dict(self) -> Dict[str, Any]:
        """Snapshot of the session for status polling."""
        return {
            "id": self.id,
            "status": self.status.value,
            "options": self.options.to_dict(),
            "strategy": self.strategy.value if self.strategy else None,
            "files": [c.to_dict() for c in self.files],
            "outcomes": [o.to_dict() for o in self.outcomes.values()],
            "datasets": {
                d.entity_type: {"table": d.table, "registros": len(d), "descartados": d.descartados}
                for d in self.ordered_datasets()
            },
            "validation": self.summary.to_dict() if self.summary else None,
            "progress": self.progress.last.to_dict(),
            "result": self.result.to_dict() if self.status in (
                SessionStatus.IMPORTANDO, SessionStatus.CONCLUIDO, SessionStatus.CANCELADO
            ) else None,
        }


class ImportOrchestrator:
    """
    Entry point for running imports.

    Holds the configuration, storage and registry shared by sessions, and
    offers a one-call ``run`` for callers that do not need to stop between
    validation and import.
    """

    def __init__(
        self,
        storage: BaseStorage,
        config: Optional[ImportConfig] = None,
        registry: Optional[EntityRegistry] = None,
    ):
        self.storage = storage
        self.config = config or ImportConfig()
        self.registry = registry or EntityRegistry(self.config.schemas_dir)
        self.classifier = FileClassifier()
        self.history = ImportHistory(storage)

    def new_session(self) -> ImportSession:
        return ImportSession(self.storage, self.config, self.registry, self.classifier)

    async def run(
        self,
        files: Iterable[SourceFile],
        options: Optional[ImportOptions] = None,
        strategy: Optional[MergeStrategy] = None,
        force: bool = False,
        selected: Optional[Iterable[str]] = None,
        on_progress: Optional[Callable] = None,
    ) -> SessionResult:
        """
        Analyze, validate, confirm and import in one go.

        Args:
            files: Uploaded files
            options: Session options
            strategy: Merge strategy for duplicates
            force: Import despite critical findings
            selected: Names of the files to import
            on_progress: Callback receiving ProgressEvents

        Returns:
            SessionResult

        Raises:
            PreflightError: Nothing to import
            ImportBlockedError: Critical findings and force is False
            StorageError: The backend does not answer
        """
        session = self.new_session()
        if on_progress:
            session.subscribe(on_progress)

        session.analyze(files, options=options, selected=selected)
        await session.validate()
        session.confirm(strategy, force=force)
        return await session.run()

    async def recent_imports(self, limit: int = 10) -> List[Dict[str, Any]]:
        """Most recent import log rows. Raises StorageError when unreadable."""
        return await self.history.recent(limit)
