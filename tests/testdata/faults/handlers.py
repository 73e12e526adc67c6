"""Handlers with documentation problems."""

from thirdparty.models import Widget


def get_item():
    """
    @Summary  Missing path parameter
    @Param    q  query  string  false  "query"
    @Success  200  {object}  Widget
    @Router   /items/{id} [get]
    """


def get_item_again():
    """
    @Summary  Same route, later handler
    @Param    id  path  int  true  "Item ID"
    @Success  200  {object}  NoSuchType
    @Router   /items/{id} [get]
    """


def broken_param():
    """
    @Param    onlyname
    @Success  200  {string}  string
    @Router   /broken [get]
    """


def no_router():
    """
    @Summary  Helper without a route
    @Param    x  query  string  false  "x"
    """
