from django.contrib import admin

from books.models import Book, Stock


class StockInline(admin.StackedInline):
    model = Stock
    readonly_fields = ["quantity"]
    can_delete = False


@admin.register(Book)
class BookAdmin(admin.ModelAdmin):
    list_display = ["id", "title", "author", "quantity_on_shelf"]
    search_fields = ["title", "author"]
    inlines = [StockInline]

    def quantity_on_shelf(self, obj):
        stock = getattr(obj, "stock", None)
        return stock.quantity if stock else 0

    quantity_on_shelf.short_description = "On shelf"
