"""CLOB REST paths."""

# Server
OK = "/"
TIME = "/time"

# Markets
MARKETS = "/markets"
MARKET = "/markets/"  # + condition id
SIMPLIFIED_MARKETS = "/simplified-markets"
SAMPLING_MARKETS = "/sampling-markets"
SAMPLING_SIMPLIFIED_MARKETS = "/sampling-simplified-markets"

# Order book and pricing
ORDER_BOOK = "/book"
ORDER_BOOKS = "/books"
MIDPOINT = "/midpoint"
MIDPOINTS = "/midpoints"
PRICE = "/price"
PRICES = "/prices"
SPREAD = "/spread"
SPREADS = "/spreads"
LAST_TRADE_PRICE = "/last-trade-price"
LAST_TRADES_PRICES = "/last-trades-prices"
PRICES_HISTORY = "/prices-history"
MARKET_TRADES_EVENTS = "/live-activity/events/"  # + condition id

# Market metadata
TICK_SIZE = "/tick-size"
NEG_RISK = "/neg-risk"
FEE_RATE = "/fee-rate"

# Orders
POST_ORDER = "/order"
POST_ORDERS = "/orders"
CANCEL_ORDER = "/order"
CANCEL_ORDERS = "/orders"
CANCEL_ALL = "/cancel-all"
CANCEL_MARKET_ORDERS = "/cancel-market-orders"
ORDER = "/data/order/"  # + order id
ORDERS = "/data/orders"

# Trades
TRADES = "/data/trades"

# Order scoring
ORDER_SCORING = "/order-scoring"
ORDERS_SCORING = "/orders-scoring"

# Account
NOTIFICATIONS = "/notifications"
HEARTBEAT = "/v1/heartbeats"

# API keys
CREATE_API_KEY = "/auth/api-key"
DELETE_API_KEY = "/auth/api-key"
GET_API_KEYS = "/auth/api-keys"
DERIVE_API_KEY = "/auth/derive-api-key"

# Prefixes followed by an id segment
ID_ROUTES = (MARKET, ORDER, MARKET_TRADES_EVENTS)
