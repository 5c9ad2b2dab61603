from slowapi import Limiter
from slowapi.util import get_remote_address

# Shared by every router and installed on the app so one store tracks all endpoints
limiter = Limiter(key_func=get_remote_address)
