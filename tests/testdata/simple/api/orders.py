"""Order handlers."""

from models import order


class OrderView:
    async def get(self, order_id: str) -> order.Order:
        """
        @Summary  Show an order
        @Tags     orders
        @Param    order_id  path  string  true  "Order ID"
        @Success  200  {object}  order.Order
        @Router   /orders/{order_id} [get]
        """
        raise NotImplementedError

    async def categories(self) -> list[order.Category]:
        """
        @Summary  Category tree
        @Tags     orders
        @Success  200  {array}  order.Category
        @Router   /categories [get]
        """
        raise NotImplementedError

    def _helper(self):
        """Not a handler."""
