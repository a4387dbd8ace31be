"""
Green Corridor Service
Main FastAPI Application Entry Point

Initializes FastAPI, Socket.IO, configuration, the corridor engine and the
signal interlock, then loads the road graph in the background.
"""

import asyncio
import time
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import socketio

from green_corridor.clock import iso_utc
from green_corridor.config import get_config
from green_corridor.errors import CorridorError
from green_corridor.models import RoadNode, GraphStats
from green_corridor.security import AuthorizedFleet
from green_corridor.routing import RouteFinder, load_road_graph
from green_corridor.engine import (
    CorridorOrchestrator,
    SignalBridge,
    HttpSignalClient,
    LocalSignalClient,
)
from green_corridor.interlock import (
    IntersectionRegistry,
    SignalInterlockController,
    PreArrivalScheduler,
    SignalPriorityService,
)
from green_corridor.websocket import WebSocketEmitter, WebSocketHandlers, set_emitter, set_handlers
from green_corridor.api import (
    corridor_router,
    signal_router,
    set_corridor_components,
    set_signal_components,
)

# Create Socket.IO server
sio = socketio.AsyncServer(
    async_mode='asgi',
    cors_allowed_origins='*',
    logger=False,
    engineio_logger=False,
    ping_interval=25,
    ping_timeout=60
)

# Global instances
ws_emitter: Optional[WebSocketEmitter] = None
ws_handlers: Optional[WebSocketHandlers] = None
route_finder: Optional[RouteFinder] = None
orchestrator: Optional[CorridorOrchestrator] = None
scheduler: Optional[PreArrivalScheduler] = None
bridge: Optional[SignalBridge] = None
graph_stats: Optional[GraphStats] = None
graph_error: Optional[str] = None
started_at = time.time()


async def load_graph_in_background(cfg):
    """Load the road graph off the event loop, then mark the engine ready"""
    global graph_stats, graph_error

    path = cfg.resolve_path('routing.graphFile')
    default_length = float(cfg.get('routing.defaultEdgeLength', 1.0))

    try:
        graph, stats = await asyncio.to_thread(load_road_graph, path, default_length)
    except CorridorError as e:
        graph_error = e.message
        print(f"[ERROR] Road graph failed to load: {e.message}")
        return

    route_finder.set_graph(graph)
    graph_stats = stats
    print("[OK] Corridor engine ready")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events - startup and shutdown"""
    global ws_emitter, ws_handlers, route_finder, orchestrator, scheduler, bridge

    # Startup
    print("=" * 60)
    print("[STARTUP] Green Corridor Service")
    print("=" * 60)

    cfg = get_config()
    print("[OK] Configuration loaded")

    # WebSocket emitter and handlers
    ws_emitter = WebSocketEmitter(sio)
    ws_emitter.bind_loop(asyncio.get_running_loop())
    ws_handlers = WebSocketHandlers(sio, ws_emitter)
    set_emitter(ws_emitter)
    set_handlers(ws_handlers)
    print("[OK] WebSocket emitter and handlers initialized")

    # Signal interlock
    signal_cfg = cfg.get_signal_config()
    registry = IntersectionRegistry.from_config(cfg.get('intersections'))
    fleet = AuthorizedFleet(cfg.get('fleet'))
    controller = SignalInterlockController(registry)
    scheduler = PreArrivalScheduler(
        controller,
        immediate_threshold_s=signal_cfg.get('immediateThresholdSec', 20),
        early_buffer_s=signal_cfg.get('earlyActivationBufferSec', 10),
        on_activation=ws_emitter.emit_activation_from_thread
    )
    service = SignalPriorityService(
        registry,
        scheduler,
        default_intersection=signal_cfg.get('defaultIntersection', 'INT-MAIN')
    )
    print(f"[OK] Signal interlock initialized ({len(fleet)} authorized vehicles)")

    # Signal bridge
    api_cfg = cfg.get_signal_api_config()
    if api_cfg.get('mode') == 'local':
        client = LocalSignalClient(service, fleet)
    else:
        client = HttpSignalClient(
            api_cfg.get('url', 'http://localhost:8000'),
            api_cfg.get('securityToken', ''),
            timeout_s=api_cfg.get('timeoutSec', 5)
        )
    bridge = SignalBridge(registry, client, vehicle_id_override=api_cfg.get('bridgeVehicleId'))
    print(f"[OK] Signal bridge initialized (mode: {api_cfg.get('mode', 'http')})")

    # Corridor engine
    corridor_cfg = cfg.get_corridor_config()
    fallback = corridor_cfg.get('fallbackSignal')
    orchestrator = CorridorOrchestrator(
        bridge=bridge,
        ws_emitter=ws_emitter,
        proximity_threshold_m=corridor_cfg.get('proximityThresholdM', 500),
        tti_threshold_s=corridor_cfg.get('ttiThresholdSec', 20),
        smoothing_window=corridor_cfg.get('smoothingWindow', 5),
        fallback_target=RoadNode(**fallback) if fallback else None
    )
    route_finder = RouteFinder()

    set_corridor_components(
        route_finder=route_finder,
        orchestrator=orchestrator,
        ws_emitter=ws_emitter,
        registry=registry,
        merge_managed_intersections=bool(cfg.get('routing.mergeManagedIntersections', False))
    )
    set_signal_components(
        service=service,
        controller=controller,
        registry=registry,
        fleet=fleet,
        security_token=api_cfg.get('securityToken', ''),
        ws_emitter=ws_emitter
    )

    # Road graph loads in the background; endpoints answer 503 until ready
    graph_task = asyncio.create_task(load_graph_in_background(cfg))

    print("=" * 60)
    print("[SERVER] Ready at http://localhost:8000")
    print("[DOCS] API docs at http://localhost:8000/docs")
    print("[ROUTE] POST /route to set the corridor")
    print("[TELEMETRY] POST /telemetry to move the ambulance")
    print("=" * 60)

    yield

    # Shutdown
    print("[SHUTDOWN] Shutting down...")

    if not graph_task.done():
        graph_task.cancel()

    scheduler.shutdown()
    await orchestrator.drain()
    await bridge.close()

    print("[SHUTDOWN] Complete")


# Create FastAPI application
app = FastAPI(
    title="Green Corridor Service API",
    description="Emergency vehicle green corridor engine and signal safety interlock",
    version="1.0.0",
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc"
)

# CORS Configuration
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ============================================
# Error Handlers
# ============================================

@app.exception_handler(CorridorError)
async def corridor_error_handler(request: Request, exc: CorridorError):
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    first = errors[0] if errors else {}
    location = ".".join(str(p) for p in first.get("loc", []) if p != "body")
    message = f"{location}: {first.get('msg')}" if location else str(first.get("msg", "Invalid request"))
    return JSONResponse(
        status_code=400,
        content={"success": False, "error": "VALIDATION_ERROR", "message": message}
    )


# ============================================
# Include API Routers
# ============================================

# Corridor routes: /route, /telemetry, /corridor/status, /map/*
app.include_router(corridor_router)

# Signal routes: /api/v1/signal/*
app.include_router(signal_router)


# ============================================
# Root Endpoints
# ============================================

@app.get("/", tags=["root"])
async def root():
    """Root endpoint - API information"""
    return {
        "name": "Green Corridor Service",
        "version": "1.0.0",
        "documentation": "/docs",
        "websocket": "ws://localhost:8000",
        "endpoints": {
            "route": "/route",
            "telemetry": "/telemetry",
            "corridor": "/corridor/status",
            "map": "/map/*",
            "signal": "/api/v1/signal/*"
        }
    }


@app.get("/health", tags=["health"])
async def health_check():
    """Health check endpoint"""
    cfg = get_config()
    ready = route_finder is not None and route_finder.graph is not None

    return {
        "status": "ready" if ready else ("error" if graph_error else "loading"),
        "service": "green-corridor",
        "thresholds": {
            "proximityM": cfg.get('corridor.proximityThresholdM'),
            "ttiSec": cfg.get('corridor.ttiThresholdSec')
        },
        "graph": graph_stats.to_dict() if graph_stats else None,
        "graphError": graph_error,
        "pendingActivations": scheduler.pending_count if scheduler else 0,
        "websocket": {
            "connected_clients": ws_handlers.get_client_count() if ws_handlers else 0,
            "dashboards": ws_handlers.get_dashboard_count() if ws_handlers else 0
        },
        "uptime": round(time.time() - started_at, 1),
        "timestamp": iso_utc()
    }


# ============================================
# Create Socket.IO ASGI app
# ============================================

sio_app = socketio.ASGIApp(sio, app)


# ============================================
# WebSocket Event Reference (handled by WebSocketHandlers)
# ============================================
#
# Server -> Client Events (room 'dashboard'):
#   - connection:success      : Connection established (to the client only)
#   - corridor:stats          : Telemetry digest after every sample
#   - corridor:trigger        : Intersection fired for a vehicle
#   - corridor:route_set      : New active route
#   - signal:state_updated    : Intersection state after an override / clear
#   - signal:activation       : Deferred pre-arrival activation took effect
#   - bridge:error            : Signal bridge call failed
#
# Client -> Server Events:
#   - dashboard:join          : Join the dashboard room
#   - dashboard:leave         : Leave the dashboard room


# ============================================
# Entry Point
# ============================================

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "green_corridor.main:sio_app",
        host="0.0.0.0",
        port=8000,
        reload=True,
        log_level="info"
    )
