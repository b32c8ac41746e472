from django.contrib import admin

from loans.models import Loan


@admin.register(Loan)
class LoanAdmin(admin.ModelAdmin):
    list_display = [
        "id",
        "book",
        "member_email",
        "loan_date",
        "due_date",
        "return_date",
        "fine",
    ]
    list_filter = ["return_date", "due_date"]
    search_fields = ["member__email", "member__username", "book__title"]
    # Corrections go through the API so they are audited
    readonly_fields = [
        "book",
        "member",
        "stock",
        "loan_date",
        "due_date",
        "return_date",
        "fine",
    ]

    def member_email(self, obj):
        return obj.member.email

    member_email.short_description = "Member Email"

    def has_add_permission(self, request):
        return False
