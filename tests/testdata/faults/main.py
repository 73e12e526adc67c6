"""
@title    Broken API
@version  0.1

@securityDefinitions.apikey Incomplete
"""
