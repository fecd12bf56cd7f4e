"""
Dispatchman Admin.

Provides views for production debugging:
- StoragePosition / DepotTimeSlot: list + edit (layout configuration)
- StockLot: read-only (on hand, reserved, available, expiry status)
- StockMove: read-only audit trail
- StorageSlotClaim: read-only with "cancel suggestion" action
- TimeSlotReservation: read-only
- OutboundOrder: read-only with lines and "cancel" action
- PriorityFactorConfig: read-only (change through PriorityScoringEngine)

State only changes through the services, so nothing that holds stock or
exclusivity is editable here.
"""

import logging

from django.contrib import admin
from django.utils.translation import gettext_lazy as _

from dispatchman.exceptions import DispatchError
from dispatchman.models import (
    ClaimState,
    DepotTimeSlot,
    LotReservation,
    OrderStatus,
    OutboundOrder,
    OutboundOrderLine,
    PriorityFactorConfig,
    StockLot,
    StockMove,
    StoragePosition,
    StorageSlotClaim,
    TimeSlotReservation,
)

logger = logging.getLogger(__name__)


class ReadOnlyAdminMixin:
    """No add, change or delete: rows are written by the services only."""

    def has_add_permission(self, request, obj=None):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


# =========================================================================
# LAYOUT (editable)
# =========================================================================

@admin.register(StoragePosition)
class StoragePositionAdmin(admin.ModelAdmin):
    """Storage position admin — editable."""

    list_display = ['code', 'depot_id', 'zone', 'capacity', 'is_active']
    list_filter = ['depot_id', 'zone', 'is_active']
    search_fields = ['code']
    readonly_fields = ['created_at', 'updated_at']


@admin.register(DepotTimeSlot)
class DepotTimeSlotAdmin(admin.ModelAdmin):
    """Pickup window catalog — editable."""

    list_display = ['depot_id', 'time_slot', 'is_active']
    list_filter = ['depot_id', 'is_active']


# =========================================================================
# STOCK (read-only)
# =========================================================================

@admin.register(StockLot)
class StockLotAdmin(ReadOnlyAdminMixin, admin.ModelAdmin):
    """Lot admin — read-only. Quantities only change via StockLedger."""

    list_display = ['product_id', 'depot_id', 'lot_code', 'expiration_date',
                    'quantity_on_hand', 'quantity_reserved', 'available_display',
                    'expiry_status_display', 'position']
    list_filter = ['depot_id', 'expiration_date']
    search_fields = ['product_id', 'lot_code', 'pallet_id']
    date_hierarchy = 'expiration_date'

    @admin.display(description=_('Disponível'))
    def available_display(self, obj):
        return obj.available

    @admin.display(description=_('Validade'))
    def expiry_status_display(self, obj):
        from dispatchman.services.ledger import StockLedger
        return StockLedger.expiry_status(obj)


@admin.register(StockMove)
class StockMoveAdmin(ReadOnlyAdminMixin, admin.ModelAdmin):
    """Move admin — read-only. Immutable audit trail."""

    list_display = ['timestamp', 'lot', 'delta', 'reason', 'reference', 'user_id']
    list_filter = ['timestamp']
    search_fields = ['reason', 'reference']
    date_hierarchy = 'timestamp'


# =========================================================================
# CLAIMS AND BOOKINGS (read-only)
# =========================================================================

@admin.register(StorageSlotClaim)
class StorageSlotClaimAdmin(ReadOnlyAdminMixin, admin.ModelAdmin):
    """Pallet allocation admin — read-only with cancel action."""

    list_display = ['pallet_id', 'position', 'state', 'confirmation_method',
                    'claimed_at', 'confirmed_at', 'removed_at']
    list_filter = ['state', 'confirmation_method']
    search_fields = ['pallet_id', 'position__code']
    actions = ['cancel_claims']

    @admin.action(description=_('Cancelar sugestões selecionadas'))
    def cancel_claims(self, request, queryset):
        from dispatchman.services.positions import PositionAllocator

        count = 0
        for claim in queryset.filter(state=ClaimState.TENTATIVE):
            try:
                PositionAllocator.cancel(claim.pallet_id)
                count += 1
            except DispatchError as exc:
                logger.warning("cancel_claims: failed to cancel %s: %s", claim.pallet_id, exc)

        self.message_user(request, _('{count} sugestão(ões) cancelada(s).').format(count=count))


@admin.register(TimeSlotReservation)
class TimeSlotReservationAdmin(ReadOnlyAdminMixin, admin.ModelAdmin):
    """Time slot booking admin — read-only."""

    list_display = ['date', 'time_slot', 'depot_id', 'outbound_order', 'owner_id', 'created_at']
    list_filter = ['depot_id', 'date']
    date_hierarchy = 'date'


# =========================================================================
# ORDERS (read-only)
# =========================================================================

class OutboundOrderLineInline(ReadOnlyAdminMixin, admin.TabularInline):
    model = OutboundOrderLine
    fields = ['product_id', 'quantity_requested', 'lot_code', 'quantity_reserved']
    readonly_fields = fields
    extra = 0


class LotReservationInline(ReadOnlyAdminMixin, admin.TabularInline):
    model = LotReservation
    fields = ['lot', 'quantity', 'created_at']
    readonly_fields = fields
    extra = 0


@admin.register(OutboundOrder)
class OutboundOrderAdmin(ReadOnlyAdminMixin, admin.ModelAdmin):
    """Outbound order admin — read-only with cancel action."""

    list_display = ['id', 'depot_id', 'status', 'total_weight', 'dispatch_date',
                    'time_slot', 'is_urgent', 'created_at']
    list_filter = ['status', 'depot_id', 'is_urgent']
    search_fields = ['id', 'producer_id', 'created_by']
    date_hierarchy = 'created_at'
    inlines = [OutboundOrderLineInline]
    actions = ['cancel_orders']

    @admin.action(description=_('Cancelar saídas selecionadas'))
    def cancel_orders(self, request, queryset):
        from dispatchman.services.orders import OutboundOrderOrchestrator

        count = 0
        cancellable = [OrderStatus.PENDING_SEPARATION, OrderStatus.SEPARATED]
        for order in queryset.filter(status__in=cancellable):
            try:
                OutboundOrderOrchestrator.cancel(order.pk, user_id=str(request.user.pk))
                count += 1
            except DispatchError as exc:
                logger.warning("cancel_orders: failed to cancel %s: %s", order.pk, exc)

        self.message_user(request, _('{count} saída(s) cancelada(s).').format(count=count))


@admin.register(OutboundOrderLine)
class OutboundOrderLineAdmin(ReadOnlyAdminMixin, admin.ModelAdmin):
    """Order line admin — read-only with the lots it reserved."""

    list_display = ['order', 'product_id', 'quantity_requested', 'lot_code', 'quantity_reserved']
    search_fields = ['product_id', 'lot_code']
    inlines = [LotReservationInline]


@admin.register(PriorityFactorConfig)
class PriorityFactorConfigAdmin(ReadOnlyAdminMixin, admin.ModelAdmin):
    """Priority configuration admin — read-only."""

    list_display = ['depot_id', 'mode', 'updated_by', 'updated_at']
    list_filter = ['mode']
