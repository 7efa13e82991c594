"""Migration pipeline - moves FreshBooks records into Zoho Books stage by stage."""

import logging
from collections import Counter
from datetime import datetime
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Set, Tuple

from .exceptions import (
    ConfigurationError,
    DestinationAPIError,
    DestinationError,
    MigrationError,
    TokenRefreshError,
)
from .extractors.freshbooks_extractor import FreshBooksExtractor
from .loaders.rate_limiter import RateWindow
from .loaders.zoho_gateway import ZohoGateway
from .loaders.zoho_loader import ZohoLoader
from .models.config import MigrationConfig
from .models.destination import (
    AccountType,
    ContactType,
    ZBAccount,
    ZBAccountCreateRequest,
    ZBAccountUpdateRequest,
    ZBContactCreateRequest,
    ZBPayment,
)
from .models.migration import EntityType, MigrationRun, MigrationStatus
from .models.record import MigrationResult, RecordOutcome
from .models.source import FBExpense, FBInvoice, FBItem, FBPayment, FBTax
from .services.business_tags import BusinessTagHelper
from .services.category_mapping import CategoryMapping
from .services.id_registry import IDMappingRegistry, fingerprint, normalize_key
from .services.lookup_tables import invoice_is_sent
from .services.mappers import (
    configured_account,
    map_account,
    map_customer,
    map_customer_from_invoice,
    map_expense,
    map_invoice,
    map_item,
    map_payment,
    map_tax,
    map_vendor,
    map_vendor_from_expense,
)
from .services.token_manager import TokenManager

logger = logging.getLogger(__name__)

# Errors that end the run no matter where they happen
FATAL_ERRORS = (TokenRefreshError,)

# Stages whose mappings a stage needs before it can start
STAGE_DEPENDENCIES: Dict[EntityType, Tuple[EntityType, ...]] = {
    EntityType.INVOICE: (EntityType.TAX, EntityType.ITEM, EntityType.CUSTOMER),
    EntityType.EXPENSE: (EntityType.ACCOUNT, EntityType.TAX, EntityType.CUSTOMER, EntityType.VENDOR),
    EntityType.PAYMENT: (EntityType.CUSTOMER, EntityType.INVOICE),
}

# Stages deduplicated by fingerprint rather than by a unique name
FINGERPRINTED: Tuple[EntityType, ...] = (EntityType.EXPENSE, EntityType.PAYMENT)


def expense_key(
    date: Optional[str],
    amount: Optional[float],
    account_id: Optional[str],
    vendor_id: Optional[str],
    reference: Optional[str],
    description: Optional[str],
) -> str:
    return fingerprint(date, float(amount or 0), account_id, vendor_id, reference or description)


def payment_key(
    customer_id: Optional[str],
    date: Optional[str],
    amount: Optional[float],
    invoice_ids: Iterable[str],
    reference: Optional[str],
) -> str:
    return fingerprint(customer_id, date, float(amount or 0), ",".join(sorted(invoice_ids)), reference)


class MigrationPipeline:
    """
    Runs the FreshBooks to Zoho Books migration.

    Handles:
    - Fixed stage order: categories, taxes, items, customers, vendors,
      invoices, expenses, payments
    - Running missing dependency stages before a single stage
    - Deduplication against records already in Zoho
    - Recovery from duplicate-name errors on create
    - Per-record failure isolation and per-stage summaries
    """

    STAGE_ORDER: List[EntityType] = list(EntityType)

    def __init__(
        self,
        extractor: FreshBooksExtractor,
        loader: ZohoLoader,
        category_mapping: Optional[CategoryMapping] = None,
        tag_helper: Optional[BusinessTagHelper] = None,
        paid_through_accounts: Optional[Mapping[str, str]] = None,
        deposit_accounts: Optional[Mapping[str, str]] = None,
        contact_name_overrides: Optional[Mapping[str, str]] = None,
        use_config_mapping: bool = False,
        include_items: bool = True,
    ):
        """
        Initialize the pipeline.

        Args:
            extractor: Paginated FreshBooks reader
            loader: Zoho Books endpoints (in dry-run mode or not)
            category_mapping: Configured account hierarchy
            tag_helper: Business-line tagging for expenses
            paid_through_accounts: FreshBooks account name -> Zoho account ID
            deposit_accounts: Payment gateway/type -> Zoho account ID
            contact_name_overrides: Source display name -> destination name
            use_config_mapping: Build the hierarchical chart of accounts
            include_items: Migrate items/products
        """
        self.extractor = extractor
        self.loader = loader
        self.category_mapping = category_mapping
        self.tag_helper = tag_helper
        self.paid_through_accounts = paid_through_accounts or {}
        self.deposit_accounts = deposit_accounts or {}
        self.contact_name_overrides = contact_name_overrides or {}
        self.use_config_mapping = use_config_mapping
        self.include_items = include_items

        self.registry = IDMappingRegistry()
        self.run = MigrationRun(dry_run=loader.dry_run)

        # Runtime state
        self.default_expense_account_id: Optional[str] = None
        self._accounts_by_name: Dict[str, ZBAccount] = {}
        self._completed: Set[EntityType] = set()
        self._failed: Set[EntityType] = set()
        self.synthesized: Counter = Counter()
        self.tag_counts: Counter = Counter()
        self.unmapped_paid_through: Counter = Counter()
        self.unmapped_deposit_keys: Counter = Counter()

        self._handlers: Dict[EntityType, Callable[[MigrationResult], None]] = {
            EntityType.ACCOUNT: self._migrate_categories,
            EntityType.TAX: self._migrate_taxes,
            EntityType.ITEM: self._migrate_items,
            EntityType.CUSTOMER: self._migrate_customers,
            EntityType.VENDOR: self._migrate_vendors,
            EntityType.INVOICE: self._migrate_invoices,
            EntityType.EXPENSE: self._migrate_expenses,
            EntityType.PAYMENT: self._migrate_payments,
        }

    @classmethod
    def from_config(
        cls,
        config: MigrationConfig,
        token_manager: TokenManager,
        dry_run: bool = False,
        use_config_mapping: bool = False,
        include_items: bool = True,
        rate_window: Optional[RateWindow] = None,
    ) -> "MigrationPipeline":
        """Wire up the real FreshBooks and Zoho clients from configuration."""
        if use_config_mapping and config.category_mapping is None:
            raise ConfigurationError("Hierarchical categories need a 'category_mapping' section")

        extractor = FreshBooksExtractor(
            base_url=config.freshbooks.base_url,
            account_id=config.freshbooks.account_id,
            token_manager=token_manager,
        )
        gateway = ZohoGateway(
            base_url=config.zoho.api_base_url,
            organization_id=config.zoho.organization_id,
            token_manager=token_manager,
            rate_window=rate_window,
        )

        return cls(
            extractor=extractor,
            loader=ZohoLoader(gateway, dry_run=dry_run),
            category_mapping=CategoryMapping(config.category_mapping) if config.category_mapping else None,
            tag_helper=BusinessTagHelper(config.business_tags) if config.business_tags else None,
            paid_through_accounts=config.paid_through_accounts,
            deposit_accounts=config.deposit_accounts,
            contact_name_overrides=config.contact_name_overrides,
            use_config_mapping=use_config_mapping,
            include_items=include_items,
        )

    @property
    def dry_run(self) -> bool:
        return self.loader.dry_run

    @property
    def stages(self) -> List[EntityType]:
        return [e for e in self.STAGE_ORDER if self.include_items or e != EntityType.ITEM]

    # Stage control

    def run_all(
        self,
        continue_on_error: bool = False,
        stages: Optional[List[EntityType]] = None,
    ) -> MigrationRun:
        """
        Run stages in pipeline order.

        Args:
            continue_on_error: Keep going after a stage aborts
            stages: Stages to run (default: all). Dependencies run first.

        Returns:
            MigrationRun with the result of every stage that ran
        """
        selected = [e for e in self.stages if stages is None or e in stages]

        self.run.status = MigrationStatus.RUNNING
        self.run.started_at = datetime.utcnow()
        logger.info(f"Starting migration from FreshBooks to Zoho Books: {', '.join(e.value for e in selected)}")
        if self.dry_run:
            logger.info("[DRY RUN MODE - No changes will be made]")

        try:
            for entity in selected:
                if entity in self._completed or entity in self._failed:
                    continue
                try:
                    self.run_stage(entity)
                except FATAL_ERRORS:
                    raise
                except MigrationError as e:
                    if not continue_on_error:
                        raise
                    logger.warning(f"Continuing after {entity.value} stage failure: {e}")
        except Exception:
            self.run.status = MigrationStatus.FAILED
            raise
        else:
            self.run.status = MigrationStatus.FAILED if self._failed else MigrationStatus.COMPLETED
        finally:
            self.run.completed_at = datetime.utcnow()
            self._record_metadata()

        return self.run

    def run_stage(self, entity: EntityType) -> MigrationResult:
        """
        Run one stage, first running any dependency stage not yet done.

        Raises:
            MigrationError: the stage (or a dependency) aborted
        """
        for dependency in STAGE_DEPENDENCIES.get(entity, ()):
            if dependency == EntityType.ITEM and not self.include_items:
                continue
            if dependency in self._failed:
                raise MigrationError(f"{entity.value} needs {dependency.value}, which failed in this run")
            if dependency not in self._completed:
                logger.info(f"Migrating {dependency.value} first, {entity.value} depend on them")
                self.run_stage(dependency)

        return self._execute_stage(entity)

    def _execute_stage(self, entity: EntityType) -> MigrationResult:
        step = self.run.add_step(entity)
        step.status = MigrationStatus.RUNNING
        step.started_at = datetime.utcnow()
        logger.info(f"Migrating {entity.value}...")

        try:
            self._handlers[entity](step.result)
        except Exception as e:
            step.status = MigrationStatus.FAILED
            step.error = str(e)
            self._failed.add(entity)
            logger.error(f"{entity.label} migration aborted: {e}")
            raise
        else:
            step.status = MigrationStatus.COMPLETED
            self._completed.add(entity)
        finally:
            step.completed_at = datetime.utcnow()
            step.result.print_summary(entity.label)

        return step.result

    def _record_metadata(self) -> None:
        self.run.metadata.update({
            "customers_created_from_invoices": self.synthesized[EntityType.CUSTOMER],
            "vendors_created_from_expenses": self.synthesized[EntityType.VENDOR],
            "expense_tags": dict(self.tag_counts),
            "unmapped_paid_through_accounts": dict(self.unmapped_paid_through),
            "unmapped_deposit_accounts": dict(self.unmapped_deposit_keys),
        })

    # Per-record helpers

    def _process(self, result: MigrationResult, label: str, func: Callable[..., RecordOutcome], *args: Any) -> None:
        """Run one record's migration, keeping its failure to itself."""
        try:
            outcome = func(*args)
        except FATAL_ERRORS:
            raise
        except Exception as e:
            logger.warning(f"Failed to migrate {label}: {e}")
            result.record_failure(label, str(e))
            return
        result.record(outcome)

    def _destination_keys(self, entity: EntityType) -> Iterable[Tuple[str, str]]:
        """(natural key, destination ID) pairs for records already in Zoho."""
        if entity == EntityType.ACCOUNT:
            return ((a.account_name, a.account_id) for a in self._list_accounts())
        if entity == EntityType.TAX:
            return ((t.tax_name, t.tax_id) for t in self.loader.list_taxes() if t.tax_id)
        if entity == EntityType.ITEM:
            return ((i.name, i.item_id) for i in self.loader.list_items() if i.item_id)
        if entity == EntityType.CUSTOMER:
            return ((c.contact_name, c.contact_id) for c in self.loader.list_contacts(ContactType.CUSTOMER) if c.contact_id)
        if entity == EntityType.VENDOR:
            return ((c.contact_name, c.contact_id) for c in self.loader.list_contacts(ContactType.VENDOR) if c.contact_id)
        if entity == EntityType.INVOICE:
            return ((i.invoice_number, i.invoice_id) for i in self.loader.list_invoices() if i.invoice_id)
        if entity == EntityType.EXPENSE:
            return (
                (
                    expense_key(
                        e.date, e.effective_amount, e.account_id, e.vendor_id, e.reference_number, e.description
                    ),
                    e.expense_id,
                )
                for e in self.loader.list_expenses() if e.expense_id
            )
        return (
            (
                payment_key(p.customer_id, p.date, p.amount, self._applied_invoice_ids(p), p.reference_number),
                p.payment_id,
            )
            for p in self.loader.list_payments() if p.payment_id
        )

    def _applied_invoice_ids(self, payment: ZBPayment) -> List[str]:
        if payment.invoices:
            return [i.invoice_id for i in payment.invoices]
        numbers = [n.strip() for n in (payment.invoice_numbers or "").split(",") if n.strip()]
        invoices = self.registry.index(EntityType.INVOICE)
        return [invoices.lookup(n) or n for n in numbers]

    def _build_index(self, entity: EntityType) -> None:
        entries = list(self._destination_keys(entity))
        if entity in FINGERPRINTED:
            index = self.registry.rebuild_fingerprints(entity, entries)
        else:
            index = self.registry.rebuild_index(entity, entries)
        logger.info(f"Found {len(index)} existing {entity.value} in Zoho")

    def _ensure_index(self, entity: EntityType) -> None:
        if not self.registry.is_indexed(entity):
            self._build_index(entity)

    def _list_accounts(self) -> List[ZBAccount]:
        accounts = [a for a in self.loader.list_accounts() if a.account_id]
        self._accounts_by_name = {}
        for account in accounts:
            self._accounts_by_name.setdefault(normalize_key(account.account_name), account)
        if self.default_expense_account_id is None:
            self.default_expense_account_id = next(
                (a.account_id for a in accounts if a.account_type == AccountType.EXPENSE.value), None
            )
        return accounts

    def _create_with_reconciliation(
        self,
        entity: EntityType,
        key: str,
        create: Callable[[], str],
    ) -> Tuple[str, RecordOutcome]:
        """
        Create a record; on a duplicate-name error adopt the existing one.

        Zoho can reject a create because of a record the listing did not
        show. The listing is re-fetched and the record matched by ``key``.
        """
        index = self.registry.index(entity)
        try:
            dest_id = create()
        except DestinationAPIError as e:
            if not e.is_duplicate:
                raise
            logger.info(f"{entity.label} '{key}' already exists in Zoho, re-fetching")
            self._build_index(entity)
            index = self.registry.index(entity)
            existing = index.lookup(key)
            if existing is None:
                raise
            return existing, RecordOutcome.EXISTING

        index.add(key, dest_id)
        logger.debug(f"  [CREATED] {entity.label}: {key}")
        return dest_id, RecordOutcome.CREATED

    def _migrate_named(
        self,
        entity: EntityType,
        source_id: Optional[int],
        key: str,
        create: Callable[[], str],
    ) -> RecordOutcome:
        """Dedup by natural key, otherwise create, then record the mapping."""
        existing = self.registry.index(entity).lookup(key)
        if existing:
            if source_id is not None:
                self.registry.register(entity, source_id, existing)
            logger.debug(f"  [EXISTS] {entity.label}: {key}")
            return RecordOutcome.EXISTING

        dest_id, outcome = self._create_with_reconciliation(entity, key, create)
        if source_id is not None:
            self.registry.register(entity, source_id, dest_id)
        return outcome

    def _migrate_fingerprinted(
        self,
        entity: EntityType,
        source_id: int,
        key: str,
        create: Callable[[], str],
    ) -> RecordOutcome:
        """
        Match a record against one not yet claimed in the Zoho listing,
        otherwise create it.

        Records created in this run are never matched, so distinct source
        records sharing a fingerprint are all written.
        """
        existing = self.registry.fingerprints(entity).claim(key)
        if existing:
            self.registry.register(entity, source_id, existing)
            logger.debug(f"  [EXISTS] {entity.label}: {key}")
            return RecordOutcome.EXISTING

        dest_id = create()
        self.registry.register(entity, source_id, dest_id)
        logger.debug(f"  [CREATED] {entity.label}: {key}")
        return RecordOutcome.CREATED

    def _create_account(self, request: ZBAccountCreateRequest) -> str:
        account = self.loader.create_account(request)
        if self.default_expense_account_id is None and request.account_type == AccountType.EXPENSE:
            self.default_expense_account_id = account.account_id
        return account.account_id

    def _synthesize_contact(self, entity: EntityType, source_id: Optional[int], request: ZBContactCreateRequest) -> str:
        """Find or create a minimal contact for a record that references one."""
        outcome = self._migrate_named(
            entity, source_id, request.contact_name,
            lambda: self.loader.create_contact(request).contact_id,
        )
        dest_id = self.registry.index(entity).lookup(request.contact_name)
        if outcome == RecordOutcome.CREATED:
            self.synthesized[entity] += 1
            logger.info(f"  [CREATED] {entity.label} '{request.contact_name}' from source data")
        return dest_id

    # Categories / chart of accounts

    def _migrate_categories(self, result: MigrationResult) -> None:
        if self.use_config_mapping:
            if self.category_mapping is None:
                raise ConfigurationError("Category mapping not configured")
            self._migrate_categories_hierarchical(result)
        else:
            self._migrate_categories_direct(result)

    def _migrate_categories_direct(self, result: MigrationResult) -> None:
        self._build_index(EntityType.ACCOUNT)
        categories = self.extractor.fetch_categories()

        canonical: Dict[str, int] = {}
        duplicates: Dict[int, int] = {}
        for category in categories:
            key = normalize_key(category.name)
            if key in canonical:
                duplicates[category.id] = canonical[key]
                logger.info(
                    f"  [DUPLICATE] '{category.name}' - IDs {canonical[key]} and {category.id}, merging"
                )
                continue
            canonical[key] = category.id
            self._process(
                result, category.name, self._migrate_named,
                EntityType.ACCOUNT, category.id, category.name,
                lambda c=category: self._create_account(map_account(c)),
            )

        for duplicate_id, canonical_id in duplicates.items():
            account_id = self.registry.resolve(EntityType.ACCOUNT, canonical_id)
            if account_id:
                self.registry.register(EntityType.ACCOUNT, duplicate_id, account_id)

        if duplicates:
            logger.info(f"Merged {len(duplicates)} duplicate categories into {len(canonical)} accounts")

    def _migrate_categories_hierarchical(self, result: MigrationResult) -> None:
        mapping = self.category_mapping
        self._build_index(EntityType.ACCOUNT)
        categories = self.extractor.fetch_categories()

        targets: Dict[int, str] = {}
        fallbacks: List[str] = []
        for category in categories:
            target = mapping.target_for(category.name)
            if not mapping.exists(target):
                target = mapping.default_category
            if target == mapping.default_category and not mapping.exists(category.name):
                fallbacks.append(f"{category.name} -> {target}")
            targets[category.id] = target

        if fallbacks:
            logger.info(f"{len(fallbacks)} FreshBooks categories mapped to fallback: {', '.join(fallbacks[:10])}")

        configured_ids: Dict[str, str] = {}

        for parent in sorted(mapping.parent_categories):
            self._process(result, parent, self._migrate_configured_parent, parent, configured_ids)

        for name in sorted(mapping.all_category_names):
            if mapping.is_parent(name):
                continue
            self._process(result, name, self._migrate_configured_child, name, configured_ids)

        for category_id, target in targets.items():
            account_id = configured_ids.get(normalize_key(target)) or self.registry.index(EntityType.ACCOUNT).lookup(target)
            if account_id:
                self.registry.register(EntityType.ACCOUNT, category_id, account_id)
            else:
                logger.warning(f"No account available for category '{target}'")

    def _migrate_configured_parent(self, name: str, configured_ids: Dict[str, str]) -> RecordOutcome:
        outcome = self._migrate_named(
            EntityType.ACCOUNT, None, name,
            lambda: self._create_account(configured_account(name)),
        )
        configured_ids[normalize_key(name)] = self.registry.index(EntityType.ACCOUNT).lookup(name)
        return outcome

    def _migrate_configured_child(self, name: str, configured_ids: Dict[str, str]) -> RecordOutcome:
        index = self.registry.index(EntityType.ACCOUNT)
        parent = self.category_mapping.parent_name(name)
        expected_parent_id = None
        if parent:
            expected_parent_id = configured_ids.get(normalize_key(parent)) or index.lookup(parent)

        existing_id = index.lookup(name)
        if existing_id:
            configured_ids[normalize_key(name)] = existing_id
            account = self._accounts_by_name.get(normalize_key(name))
            if expected_parent_id and account is not None and account.parent_account_id != expected_parent_id:
                logger.info(f"  [UPDATE] Account '{name}': set parent to '{parent}'")
                self.loader.update_account(existing_id, ZBAccountUpdateRequest(parent_account_id=expected_parent_id))
            else:
                logger.debug(f"  [EXISTS] Account: {name}")
            return RecordOutcome.EXISTING

        if parent and not expected_parent_id:
            logger.warning(f"Parent '{parent}' not found for '{name}', creating it as a top-level account")

        dest_id, outcome = self._create_with_reconciliation(
            EntityType.ACCOUNT, name,
            lambda: self._create_account(configured_account(name, expected_parent_id)),
        )
        configured_ids[normalize_key(name)] = dest_id
        return outcome

    # Taxes and items

    def _migrate_taxes(self, result: MigrationResult) -> None:
        self._build_index(EntityType.TAX)
        for tax in self.extractor.fetch_taxes():
            if not tax.is_active:
                result.record_skip()
                continue
            self._process(result, tax.display_name, self._migrate_tax, tax)

    def _migrate_tax(self, tax: FBTax) -> RecordOutcome:
        request = map_tax(tax)
        if request is None:
            logger.debug(f"Skipping tax {tax.id}: no name")
            return RecordOutcome.SKIPPED
        return self._migrate_named(
            EntityType.TAX, tax.id, request.tax_name,
            lambda: self.loader.create_tax(request).tax_id,
        )

    def _migrate_items(self, result: MigrationResult) -> None:
        self._build_index(EntityType.ITEM)
        for item in self.extractor.fetch_items():
            if not item.is_active:
                result.record_skip()
                continue
            self._process(result, item.display_name, self._migrate_item, item)

    def _migrate_item(self, item: FBItem) -> RecordOutcome:
        request = map_item(item, tax_id=self.registry.resolve(EntityType.TAX, item.tax1))
        return self._migrate_named(
            EntityType.ITEM, item.id, request.name,
            lambda: self.loader.create_item(request).item_id,
        )

    # Contacts

    def _migrate_customers(self, result: MigrationResult) -> None:
        self._build_index(EntityType.CUSTOMER)
        for client in self.extractor.fetch_clients():
            if not client.is_active:
                result.record_skip()
                continue
            request = map_customer(client, self.contact_name_overrides)
            self._process(
                result, request.contact_name, self._migrate_named,
                EntityType.CUSTOMER, client.id, request.contact_name,
                lambda r=request: self.loader.create_contact(r).contact_id,
            )

    def _migrate_vendors(self, result: MigrationResult) -> None:
        self._build_index(EntityType.VENDOR)
        for vendor in self.extractor.fetch_vendors():
            if not vendor.is_active:
                result.record_skip()
                continue
            request = map_vendor(vendor, self.contact_name_overrides)
            self._process(
                result, request.contact_name, self._migrate_named,
                EntityType.VENDOR, vendor.id, request.contact_name,
                lambda r=request: self.loader.create_contact(r).contact_id,
            )

    # Invoices

    def _migrate_invoices(self, result: MigrationResult) -> None:
        self._build_index(EntityType.INVOICE)
        self._ensure_index(EntityType.CUSTOMER)
        synthesized_before = self.synthesized[EntityType.CUSTOMER]

        for invoice in self.extractor.fetch_invoices():
            if not invoice.is_active:
                result.record_skip()
                continue
            self._process(result, invoice.number, self._migrate_invoice, invoice)

        created = self.synthesized[EntityType.CUSTOMER] - synthesized_before
        if created:
            logger.info(f"Created {created} customers from invoice data")

    def _migrate_invoice(self, invoice: FBInvoice) -> RecordOutcome:
        number = invoice.number
        existing = self.registry.index(EntityType.INVOICE).lookup(number)
        if existing:
            self.registry.register(EntityType.INVOICE, invoice.id, existing)
            logger.debug(f"  [EXISTS] Invoice: {number}")
            return RecordOutcome.EXISTING

        request = map_invoice(
            invoice,
            self._resolve_invoice_customer(invoice),
            item_lookup=self.registry.index(EntityType.ITEM).lookup,
            tax_lookup=self.registry.index(EntityType.TAX).lookup,
        )
        if request is None:
            logger.debug(f"Skipping invoice {number}: no customer mapping")
            return RecordOutcome.SKIPPED

        dest_id, outcome = self._create_with_reconciliation(
            EntityType.INVOICE, number,
            lambda: self.loader.create_invoice(request).invoice_id,
        )
        self.registry.register(EntityType.INVOICE, invoice.id, dest_id)

        if outcome == RecordOutcome.CREATED and invoice_is_sent(invoice.v3_status, invoice.status):
            try:
                self.loader.mark_invoice_sent(dest_id)
            except DestinationError as e:
                logger.warning(f"Invoice {number} created but could not be marked as sent: {e}")

        return outcome

    def _resolve_invoice_customer(self, invoice: FBInvoice) -> Optional[str]:
        if invoice.customer_id is None:
            return None
        mapped = self.registry.resolve(EntityType.CUSTOMER, invoice.customer_id)
        if mapped:
            return mapped

        request = map_customer_from_invoice(invoice, self.contact_name_overrides)
        if request is None:
            return None
        return self._synthesize_contact(EntityType.CUSTOMER, invoice.customer_id, request)

    # Expenses

    def _migrate_expenses(self, result: MigrationResult) -> None:
        self._build_index(EntityType.EXPENSE)
        self._ensure_index(EntityType.VENDOR)
        tags_before = Counter(self.tag_counts)

        for expense in self.extractor.fetch_expenses():
            if not expense.is_active:
                result.record_skip()
                continue
            self._process(result, expense.label, self._migrate_expense, expense)

        stage_tags = self.tag_counts - tags_before
        if stage_tags:
            summary = ", ".join(f"{name}: {count}" for name, count in sorted(stage_tags.items()))
            logger.info(f"Expense tags: {summary}")
        if self.unmapped_paid_through:
            names = ", ".join(sorted(self.unmapped_paid_through))
            logger.warning(f"No paid-through account configured for: {names}")

    def _migrate_expense(self, expense: FBExpense) -> RecordOutcome:
        account_id = self.registry.resolve(EntityType.ACCOUNT, expense.category_id) or self.default_expense_account_id
        if not account_id:
            logger.debug(f"Skipping expense {expense.id}: no account mapping and no default")
            return RecordOutcome.SKIPPED

        mapping = map_expense(
            expense,
            account_id,
            vendor_id=self._resolve_expense_vendor(expense),
            customer_id=self.registry.resolve(EntityType.CUSTOMER, expense.client_id),
            tax_lookup=self.registry.index(EntityType.TAX).lookup,
            paid_through_accounts=self.paid_through_accounts,
            tag_helper=self.tag_helper,
        )
        if mapping is None:
            logger.debug(f"Skipping expense {expense.id}: amount missing or unreadable")
            return RecordOutcome.SKIPPED

        request = mapping.request
        if mapping.unmapped_paid_through:
            self.unmapped_paid_through[mapping.unmapped_paid_through] += 1

        outcome = self._migrate_fingerprinted(
            EntityType.EXPENSE, expense.id,
            expense_key(
                request.date, request.amount, request.account_id, request.vendor_id,
                request.reference_number, request.description,
            ),
            lambda: self.loader.create_expense(request).expense_id,
        )
        if outcome == RecordOutcome.CREATED and mapping.business_line:
            self.tag_counts[mapping.business_line.name] += 1
        return outcome

    def _resolve_expense_vendor(self, expense: FBExpense) -> Optional[str]:
        mapped = self.registry.resolve(EntityType.VENDOR, expense.vendor_id)
        if mapped:
            return mapped

        request = map_vendor_from_expense(expense, self.contact_name_overrides)
        if request is None:
            return None
        return self._synthesize_contact(EntityType.VENDOR, expense.vendor_id, request)

    # Payments

    def _migrate_payments(self, result: MigrationResult) -> None:
        self._ensure_index(EntityType.INVOICE)
        self._build_index(EntityType.PAYMENT)
        for payment in self.extractor.fetch_payments():
            if not payment.is_active:
                result.record_skip()
                continue
            self._process(result, payment.display_name, self._migrate_payment, payment)

        if self.unmapped_deposit_keys:
            keys = ", ".join(sorted(self.unmapped_deposit_keys))
            logger.warning(f"No deposit account configured for: {keys}")

    def _migrate_payment(self, payment: FBPayment) -> RecordOutcome:
        mapping = map_payment(
            payment,
            self.registry.resolve(EntityType.CUSTOMER, payment.client_id),
            invoice_id=self.registry.resolve(EntityType.INVOICE, payment.invoice_id),
            deposit_accounts=self.deposit_accounts,
        )
        if mapping is None:
            logger.debug(f"Skipping payment {payment.id}: no customer mapping or invalid amount")
            return RecordOutcome.SKIPPED

        if mapping.unmapped_key:
            self.unmapped_deposit_keys[mapping.unmapped_key] += 1

        request = mapping.request
        invoice_ids = [i.invoice_id for i in request.invoices or []]
        return self._migrate_fingerprinted(
            EntityType.PAYMENT, payment.id,
            payment_key(request.customer_id, request.date, request.amount, invoice_ids, request.reference_number),
            lambda: self.loader.create_payment(request).payment_id,
        )
