from django.contrib import admin
from simple_history.admin import SimpleHistoryAdmin

from .models import (
    AllocationRecord,
    Apartment,
    ApartmentYearSetting,
    CostType,
    Owner,
    PrepaymentPeriod,
    Tenant,
)


class ApartmentYearSettingInline(admin.TabularInline):
    model = ApartmentYearSetting
    extra = 0


@admin.register(Owner)
class OwnerAdmin(admin.ModelAdmin):
    list_display = ("name", "property_name", "settlement_period")
    search_fields = ("name", "property_name")
    readonly_fields = ("created_at", "updated_at")


@admin.register(Tenant)
class TenantAdmin(admin.ModelAdmin):
    list_display = ("name", "email", "phone")
    search_fields = ("name", "email", "phone")


@admin.register(Apartment)
class ApartmentAdmin(admin.ModelAdmin):
    list_display = ("address", "living_area", "annual_prepayment", "current_tenant")
    search_fields = ("address", "current_tenant__name")
    inlines = (ApartmentYearSettingInline,)


@admin.register(CostType)
class CostTypeAdmin(admin.ModelAdmin):
    list_display = ("label", "description", "amount")
    search_fields = ("label", "description")


@admin.register(PrepaymentPeriod)
class PrepaymentPeriodAdmin(SimpleHistoryAdmin):
    list_display = ("apartment", "tenant", "monthly_amount", "start_date", "end_date")
    list_filter = ("apartment",)
    search_fields = ("apartment__address", "tenant__name")
    date_hierarchy = "start_date"


@admin.register(ApartmentYearSetting)
class ApartmentYearSettingAdmin(admin.ModelAdmin):
    list_display = ("apartment", "year", "occupancy_months", "prepayment_mode")
    list_filter = ("year", "prepayment_mode")


@admin.register(AllocationRecord)
class AllocationRecordAdmin(admin.ModelAdmin):
    list_display = (
        "year",
        "apartment",
        "tenant_name",
        "months",
        "units",
        "allocated_cost",
        "prepayment",
        "balance",
    )
    list_filter = ("year",)
    search_fields = ("apartment__address", "tenant_name")
    readonly_fields = ("created_at", "updated_at")
