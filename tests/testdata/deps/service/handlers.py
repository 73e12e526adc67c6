"""Widget handlers."""

from sharedlib.models import Widget


def show_widget(name: str) -> Widget:
    """
    @Summary  Show a widget
    @Param    name  path  string  true  "Widget name"
    @Success  200  {object}  Widget
    @Router   /widgets/{name} [get]
    """
