from fastapi import APIRouter, Request

router = APIRouter(tags=["health"])


@router.get("/health")
async def health(request: Request):
    """Состояние сервиса и число живых подписок"""
    state = request.app.state
    return {
        "status": "healthy",
        "mode": "demo" if state.demo else "live",
        "live_subscriptions": state.connections.active_count(),
        "session_listeners": state.identity.listener_count(),
        "demo_visitors": len(state.demo_stores) if state.demo else 0,
    }
