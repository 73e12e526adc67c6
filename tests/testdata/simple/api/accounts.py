"""Account handlers."""

from models.account import Account, AccountStatus, NewAccount
from models.web import APIError, Page


def show_account(account_id: int) -> Account:
    """Show an account.

    @Summary      Show an account
    @Description  Get an account by its ID.
    @Tags         accounts
    @Accept       json
    @Produce      json
    @Param        id   path      int  true  "Account ID"
    @Success      200  {object}  models.account.Account
    @Failure      400  {object}  web.APIError
    @Failure      404  {object}  web.APIError  "Account not found"
    @Router       /accounts/{id} [get]
    """
    raise NotImplementedError


def list_accounts(q: str = "", page: int = 1) -> Page[Account]:
    """
    @Summary  List accounts
    @Tags     accounts
    @Produce  json
    @Param    q       query  string         false  "name search by q"  format(email)
    @Param    status  query  AccountStatus  false  "filter by status"
    @Param    page    query  int            false  "page number"  default(1) minimum(1)
    @Param    tags    query  []string       false  "tags"  collectionFormat(multi)
    @Success  200  {object}  Page[Account]
    @Header   200  {string}  X-Total-Count  "total number of accounts"
    @Router   /accounts [get]
    """
    raise NotImplementedError


def add_account(account: NewAccount) -> Account:
    """
    @Summary   Add an account
    @Tags      accounts
    @Accept    json
    @Produce   json
    @Param     account  body  NewAccount  true  "Add account"
    @Success   201  {object}  Account
    @Failure   400  {object}  APIError
    @Security  ApiKeyAuth
    @Router    /accounts [post]
    """
    raise NotImplementedError


def delete_account(account_id: int) -> None:
    """
    @Summary     Delete an account
    @Tags        accounts
    @Param       id  path  int  true  "Account ID"
    @Success     204  "No Content"
    @Security    OAuth2Application[write, admin] || BasicAuth
    @Deprecated
    @Router      /accounts/{id} [delete]
    """
    raise NotImplementedError


def upload_avatar(account_id: int, file: bytes) -> str:
    """
    @Summary  Upload an avatar
    @Tags     accounts
    @Accept   mpfd
    @Produce  plain
    @Param    id    path      int   true  "Account ID"
    @Param    file  formData  file  true  "avatar image"
    @Success  200  {string}  string  "ok"
    @Router   /accounts/{id}/avatar [post]
    """
    raise NotImplementedError


def show_profile():
    """Profile of the calling user.

    @Summary  Current profile
    @Success  200  {object}  models.account.Profile
    @Router   /profile [get]
    """
    raise NotImplementedError
