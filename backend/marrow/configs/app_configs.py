import os

#####
# Logging
#####
LOG_LEVEL = os.environ.get("MARROW_LOG_LEVEL", "info")

#####
# Document parsing
#####
HTML_PARSER = os.environ.get("MARROW_HTML_PARSER", "html.parser")

#####
# Rule resolution
#####
# Shared deadline in seconds for the concurrent resolver fan-out
RESOLVER_TIMEOUT = float(os.environ.get("MARROW_RESOLVER_TIMEOUT", "2.0"))
# Upper bound on concurrent resolver probes
RESOLVER_MAX_WORKERS = int(os.environ.get("MARROW_RESOLVER_MAX_WORKERS", "10"))
# Extra directory of YAML/JSON rule files loaded after the bundled ones
RULES_DIR = os.environ.get("MARROW_RULES_DIR") or None

#####
# Content scoring
#####
# 0 disables the scoring deadline
SCORING_TIMEOUT = float(os.environ.get("MARROW_SCORING_TIMEOUT", "10.0"))
UNLIKELY_LINK_DENSITY = float(os.environ.get("MARROW_UNLIKELY_LINK_DENSITY", "0.5"))
MIN_SEED_TEXT_LENGTH = int(os.environ.get("MARROW_MIN_SEED_TEXT_LENGTH", "25"))
SIBLING_SCORE_RATIO = float(os.environ.get("MARROW_SIBLING_SCORE_RATIO", "0.2"))
SWEEP_LINK_DENSITY = float(os.environ.get("MARROW_SWEEP_LINK_DENSITY", "0.25"))
MIN_CONTENT_LENGTH = int(os.environ.get("MARROW_MIN_CONTENT_LENGTH", "100"))

#####
# Tracing
#####
ENABLE_TRACING = os.environ.get("MARROW_ENABLE_TRACING", "").lower() == "true"
OTEL_EXPORTER_OTLP_ENDPOINT = os.environ.get("OTEL_EXPORTER_OTLP_ENDPOINT") or None
