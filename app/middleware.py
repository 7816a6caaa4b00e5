"""
Request gate applied to every request.

- per-IP fixed-window rate limit (429 with Retry-After before any view runs)
- fixed security headers and Content-Security-Policy
- X-Response-Time / X-Request-ID on every response
- CORS for /api/ routes, including 204 preflight answers

Counters are per process unless REQUEST_RATE_LIMIT_STORAGE_URI points at a
shared store (redis://).
"""
import logging
import time
import uuid

from flask import current_app, g, request

from app.api.errors import api_error
from app.lib.rate_limit import RequestRateLimiter

logger = logging.getLogger(__name__)


SECURITY_HEADERS = {
    'X-Frame-Options': 'DENY',
    'X-Content-Type-Options': 'nosniff',
    'X-XSS-Protection': '1; mode=block',
    'Referrer-Policy': 'strict-origin-when-cross-origin',
    'Permissions-Policy': 'camera=(), microphone=(), geolocation=(), payment=()',
    'Cross-Origin-Embedder-Policy': 'require-corp',
    'Cross-Origin-Opener-Policy': 'same-origin',
    'Cross-Origin-Resource-Policy': 'same-origin',
    'Strict-Transport-Security': 'max-age=31536000; includeSubDomains; preload',
}

CSP_POLICY = {
    'default-src': ["'self'"],
    'script-src': ["'self'", "'unsafe-inline'", "'unsafe-eval'", "https://unpkg.com"],
    'style-src': ["'self'", "'unsafe-inline'", "https://fonts.googleapis.com"],
    'font-src': ["'self'", "https://fonts.gstatic.com", "data:"],
    'img-src': ["'self'", "data:", "https:", "blob:"],
    'connect-src': ["'self'", "https://api.supabase.co", "https://*.supabase.co", "ws:", "wss:"],
    'frame-src': ["'none'"],
    'object-src': ["'none'"],
    'base-uri': ["'self'"],
    'form-action': ["'self'"],
    'frame-ancestors': ["'none'"],
    'upgrade-insecure-requests': [],
}

CORS_ALLOW_METHODS = 'GET, POST, PUT, DELETE, OPTIONS'
CORS_ALLOW_HEADERS = 'Content-Type, Authorization, X-Requested-With'
CORS_MAX_AGE = '86400'

RATE_LIMIT_MESSAGE = 'Too many requests from this IP, please try again later.'
RATE_LIMIT_EXEMPT_PATHS = ('/health',)

LOOPBACK_IP = '127.0.0.1'


def build_csp(policy=None) -> str:
    """Join directive/source pairs with '; '. Directives without sources stay bare."""
    policy = CSP_POLICY if policy is None else policy
    parts = []
    for directive, sources in policy.items():
        parts.append(f"{directive} {' '.join(sources)}" if sources else directive)
    return '; '.join(parts)


CONTENT_SECURITY_POLICY = build_csp()


def get_client_ip(req) -> str:
    forwarded = req.headers.get('X-Forwarded-For')
    if forwarded:
        return forwarded.split(',')[0].strip()
    real_ip = req.headers.get('X-Real-IP')
    if real_ip:
        return real_ip
    return LOOPBACK_IP


def cors_headers(allowed_origin='*'):
    return {
        'Access-Control-Allow-Origin': allowed_origin,
        'Access-Control-Allow-Methods': CORS_ALLOW_METHODS,
        'Access-Control-Allow-Headers': CORS_ALLOW_HEADERS,
        'Access-Control-Allow-Credentials': 'true',
        'Access-Control-Max-Age': CORS_MAX_AGE,
    }


def _is_api_request():
    return request.path.startswith('/api/')


def get_request_rate_limiter() -> RequestRateLimiter:
    return current_app.extensions['request_rate_limiter']


def init_security(app):
    rate_limiter = RequestRateLimiter.from_config(app.config)
    app.extensions['request_rate_limiter'] = rate_limiter
    if rate_limiter.is_shared:
        app.logger.info("Request rate limit counters shared through external storage")
    else:
        app.logger.info(
            "Request rate limit counters kept in process memory; "
            "limits are not shared across workers or instances"
        )

    @app.before_request
    def security_gate():
        g.request_started = time.perf_counter()

        if request.path not in RATE_LIMIT_EXEMPT_PATHS:
            client_ip = get_client_ip(request)
            limiter = get_request_rate_limiter()
            if not limiter.check_and_consume(client_ip):
                logger.warning(f"Rate limit exceeded for {client_ip} on {request.method} {request.path}")
                response = api_error('Rate limit exceeded', RATE_LIMIT_MESSAGE, 429)
                response.headers['Retry-After'] = str(limiter.retry_after(client_ip))
                return response

        if request.method == 'OPTIONS' and _is_api_request():
            response = current_app.make_response(('', 204))
            response.headers.update(cors_headers(current_app.config.get('CORS_ALLOWED_ORIGINS', '*')))
            return response

    @app.after_request
    def apply_security_headers(response):
        for header, value in SECURITY_HEADERS.items():
            response.headers[header] = value
        response.headers['Content-Security-Policy'] = CONTENT_SECURITY_POLICY

        if _is_api_request():
            for header, value in cors_headers(current_app.config.get('CORS_ALLOWED_ORIGINS', '*')).items():
                response.headers.setdefault(header, value)

        started = g.get('request_started')
        duration_ms = int((time.perf_counter() - started) * 1000) if started is not None else 0
        response.headers['X-Response-Time'] = f'{duration_ms}ms'
        response.headers['X-Request-ID'] = str(uuid.uuid4())

        if duration_ms > current_app.config.get('SLOW_REQUEST_MS', 1000):
            logger.warning(f"Slow request detected: {request.method} {request.path} - {duration_ms}ms")
        return response
