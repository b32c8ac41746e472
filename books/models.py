from django.db import models


class Book(models.Model):
    title = models.CharField(max_length=255)
    author = models.CharField(max_length=255, blank=True)

    class Meta:
        ordering = ["title", "author"]

    def __str__(self):
        if self.author:
            return f"{self.title} by {self.author}"
        return self.title


class Stock(models.Model):
    """
    Copies of a book that are currently on the shelf.

    Units are fungible. quantity only changes through books.ledger so that
    every decrement stays paired with an active loan or a held reservation.
    """

    book = models.OneToOneField(Book, on_delete=models.CASCADE, related_name="stock")
    quantity = models.PositiveIntegerField(default=0)

    class Meta:
        ordering = ["book__title"]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(quantity__gte=0), name="stock_quantity_not_negative"
            ),
        ]

    def __str__(self):
        return f"{self.book.title}: {self.quantity} on shelf"

    @property
    def is_available(self):
        return self.quantity > 0
