"""Accounts service.

@title           Accounts API
@version         1.0
@description     Manages accounts and their orders.
@termsOfService  http://example.com/terms/

@contact.name    API Support
@contact.email   support@example.com

@license.name    Apache 2.0
@license.url     http://www.apache.org/licenses/LICENSE-2.0.html

@host            localhost:8080
@BasePath        /api/v1
@schemes         http https

@tag.name        accounts
@tag.description Account management

@securityDefinitions.basic BasicAuth

@securityDefinitions.apikey ApiKeyAuth
@in              header
@name            Authorization
@description     Bearer token

@securityDefinitions.oauth2.application OAuth2Application
@tokenUrl        https://example.com/oauth/token
@scope.write     Grants write access
@scope.admin     Grants read and write access to administrative information
"""

from api import accounts, orders


def main():
    """Start the service."""
    return [accounts, orders]
