"""FastAPI router for the routing topology endpoints."""

import logging
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, Request

from ...common.exceptions import TelrouteError
from ..domain.entities import LineAssignment, Node
from ..domain.layout import LayoutGrid
from ..domain.wire_colors import WireColorCatalog
from ..use_cases import (
    UNSET,
    ConsumerLookupUseCase,
    LookupDebouncers,
    DashboardCardsUseCase,
    ManageNodesUseCase,
    ManagePhoneLinesUseCase,
    PortViewsUseCase,
    RouteAssignmentEngine,
    WireColorSettingsUseCase,
)
from .dependencies import (
    get_assignment_engine,
    get_consumer_lookup,
    get_lookup_debouncers,
    get_dashboard_cards,
    get_manage_lines,
    get_manage_nodes,
    get_port_views,
    get_wire_colors,
    verify_api_key,
)
from .errors import to_http_exception
from .schemas import (
    ConsumerLookupResponse,
    DashboardCardDTO,
    DashboardCardRequest,
    LayoutCellRequest,
    LayoutResizeRequest,
    LayoutResponse,
    NodeRequest,
    NodeResponse,
    NodeStatsResponse,
    PortAssignmentRequest,
    PortDetailRequest,
    PortDetailResponse,
    TerminalLabelRequest,
    WireColorDTO,
    WireColorRequest,
)

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api/topology",
    tags=["Line Routing"],
    dependencies=[Depends(verify_api_key)],
)


def _node_response(node: Node) -> NodeResponse:
    return NodeResponse(
        id=node.id,
        name=node.name,
        kind=node.kind.value,
        config=node.config.to_record(),
        total_ports=node.capacity.total_ports,
        created_at=node.created_at,
    )


def _layout_response(layout: LayoutGrid) -> LayoutResponse:
    record = layout.to_record()
    return LayoutResponse(
        rows=record["rows"],
        cols=record["cols"],
        mapping=record["mapping"],
        duplicate_sets=sorted(layout.duplicate_set_warnings()),
    )


def _wire_colors_response(catalog: WireColorCatalog) -> list[WireColorDTO]:
    return [WireColorDTO(name=c.name, value=c.value, is_dual=c.is_dual) for c in catalog.colors]


# ========== Nodes ==========


@router.get("/nodes", response_model=list[NodeResponse])
async def list_nodes(use_case: ManageNodesUseCase = Depends(get_manage_nodes)):
    """List all nodes ordered by name."""
    try:
        return [_node_response(n) for n in await use_case.list_nodes()]
    except TelrouteError as e:
        raise to_http_exception(e)


@router.post("/nodes", response_model=NodeResponse, status_code=201)
async def create_node(
    body: NodeRequest,
    use_case: ManageNodesUseCase = Depends(get_manage_nodes),
):
    """Create a node after validating its capacity for the given kind."""
    try:
        node = await use_case.create_node(
            body.name, body.kind, body.capacity_fields(), description=body.description
        )
    except TelrouteError as e:
        raise to_http_exception(e)
    return _node_response(node)


@router.get("/nodes/{node_id}", response_model=NodeResponse)
async def get_node(node_id: UUID, use_case: ManageNodesUseCase = Depends(get_manage_nodes)):
    try:
        return _node_response(await use_case.get_node(node_id))
    except TelrouteError as e:
        raise to_http_exception(e)


@router.put("/nodes/{node_id}", response_model=NodeResponse)
async def update_node(
    node_id: UUID,
    body: NodeRequest,
    use_case: ManageNodesUseCase = Depends(get_manage_nodes),
):
    try:
        node = await use_case.update_node(
            node_id, body.name, body.kind, body.capacity_fields(), description=body.description
        )
    except TelrouteError as e:
        raise to_http_exception(e)
    return _node_response(node)


@router.delete("/nodes/{node_id}", status_code=204)
async def delete_node(node_id: UUID, use_case: ManageNodesUseCase = Depends(get_manage_nodes)):
    """Delete a node. Rejected with 409 while any line is routed through it."""
    try:
        await use_case.delete_node(node_id)
    except TelrouteError as e:
        raise to_http_exception(e)


@router.get("/nodes/{node_id}/stats", response_model=NodeStatsResponse)
async def get_node_stats(node_id: UUID, use_case: ManageNodesUseCase = Depends(get_manage_nodes)):
    try:
        stats = await use_case.get_stats(node_id)
    except TelrouteError as e:
        raise to_http_exception(e)
    return NodeStatsResponse(**stats.to_dict())


@router.get("/nodes/{node_id}/ports")
async def list_node_ports(node_id: UUID, views: PortViewsUseCase = Depends(get_port_views)):
    """Every port of the node with its occupant and status."""
    try:
        ports = await views.node_ports(node_id)
    except TelrouteError as e:
        raise to_http_exception(e)
    return {"node_id": str(node_id), "ports": [p.to_dict() for p in ports]}


# ========== Frame sets and layout ==========


@router.get("/nodes/{node_id}/sets/{set_number}")
async def get_set_view(
    node_id: UUID,
    set_number: int,
    views: PortViewsUseCase = Depends(get_port_views),
):
    """Terminals and ports of one Frame set."""
    try:
        return (await views.set_view(node_id, set_number)).to_dict()
    except TelrouteError as e:
        raise to_http_exception(e)


@router.put("/nodes/{node_id}/sets/{set_number}/terminals/{terminal}/label")
async def set_terminal_label(
    node_id: UUID,
    set_number: int,
    terminal: int,
    body: TerminalLabelRequest,
    use_case: ManageNodesUseCase = Depends(get_manage_nodes),
):
    try:
        config = await use_case.set_terminal_label(node_id, set_number, terminal, body.label)
    except TelrouteError as e:
        raise to_http_exception(e)
    return {
        "set_number": set_number,
        "terminal": terminal,
        "label": config.terminal_label(set_number, terminal),
    }


@router.get("/nodes/{node_id}/layout")
async def get_layout_overview(node_id: UUID, views: PortViewsUseCase = Depends(get_port_views)):
    """Layout grid of a Frame with per-set usage and mapping warnings."""
    try:
        return (await views.layout_overview(node_id)).to_dict()
    except TelrouteError as e:
        raise to_http_exception(e)


@router.get("/nodes/{node_id}/layout/cell")
async def open_layout_cell(
    node_id: UUID,
    row: int = Query(..., ge=0),
    col: int = Query(..., ge=0),
    views: PortViewsUseCase = Depends(get_port_views),
):
    """Open the set shown in a layout cell."""
    try:
        view = await views.open_cell(node_id, row, col)
    except TelrouteError as e:
        raise to_http_exception(e)
    if view is None:
        raise HTTPException(status_code=404, detail=f"Cell {row}-{col} is empty")
    return view.to_dict()


@router.put("/nodes/{node_id}/layout/cell", response_model=LayoutResponse)
async def assign_layout_cell(
    node_id: UUID,
    body: LayoutCellRequest,
    use_case: ManageNodesUseCase = Depends(get_manage_nodes),
):
    try:
        layout = await use_case.assign_layout_cell(node_id, body.row, body.col, body.set_number)
    except TelrouteError as e:
        raise to_http_exception(e)
    return _layout_response(layout)


@router.put("/nodes/{node_id}/layout/size", response_model=LayoutResponse)
async def resize_layout(
    node_id: UUID,
    body: LayoutResizeRequest,
    use_case: ManageNodesUseCase = Depends(get_manage_nodes),
):
    try:
        layout = await use_case.resize_layout(node_id, body.rows, body.cols)
    except TelrouteError as e:
        raise to_http_exception(e)
    return _layout_response(layout)


@router.delete("/nodes/{node_id}/layout", response_model=LayoutResponse)
async def reset_layout(node_id: UUID, use_case: ManageNodesUseCase = Depends(get_manage_nodes)):
    """Forget the saved layout and return the default one."""
    try:
        layout = await use_case.reset_layout(node_id)
    except TelrouteError as e:
        raise to_http_exception(e)
    return _layout_response(layout)


# ========== Ports ==========


@router.put("/nodes/{node_id}/ports/{port_address}/assignment")
async def assign_port(
    node_id: UUID,
    port_address: str,
    body: PortAssignmentRequest,
    engine: RouteAssignmentEngine = Depends(get_assignment_engine),
):
    """Put a line on a port, move the port to another line, or clear it.

    Returns the applied change. Responds 409 when the port is being
    edited concurrently or no longer holds ``expected_hop_id``.
    """
    assignment = None
    if (body.phone_number or "").strip():
        assignment = LineAssignment(
            phone_number=body.phone_number,
            consumer_label=body.consumer_label,
        )

    expected = body.expected_hop_id if "expected_hop_id" in body.model_fields_set else UNSET

    try:
        change = await engine.reassign_port(
            node_id,
            port_address,
            assignment,
            wire1=body.wire1,
            wire2=body.wire2,
            actor=body.actor,
            expected_hop_id=expected,
        )
    except TelrouteError as e:
        raise to_http_exception(e)
    return change.to_dict()


@router.put("/nodes/{node_id}/ports/{port_address}/detail", response_model=PortDetailResponse)
async def set_port_detail(
    node_id: UUID,
    port_address: str,
    body: PortDetailRequest,
    engine: RouteAssignmentEngine = Depends(get_assignment_engine),
):
    """Save a port's custom label and physically-broken flag."""
    try:
        detail = await engine.set_port_detail(
            node_id, port_address, body.label, body.physically_broken
        )
    except TelrouteError as e:
        raise to_http_exception(e)
    return PortDetailResponse(
        address=port_address,
        label=detail.label,
        physically_broken=detail.physically_broken,
    )


# ========== Phone lines ==========


@router.get("/lines/lookup", response_model=ConsumerLookupResponse)
async def lookup_consumer(
    request: Request,
    number: str = Query(..., min_length=1),
    form_id: Optional[str] = Query(None, max_length=64),
    use_case: ConsumerLookupUseCase = Depends(get_consumer_lookup),
    debouncers: LookupDebouncers = Depends(get_lookup_debouncers),
):
    """Consumer label of the line with this number, for form auto-fill.

    Requests are debounced per ``form_id`` (or per client address). A
    request replaced by a newer keystroke answers ``superseded`` with no
    label so the form keeps its fresher input.
    """
    client_key = form_id or (request.client.host if request.client else "anonymous")
    try:
        outcome = await use_case.lookup_as_typed(debouncers.for_client(client_key), number)
    except TelrouteError as e:
        raise to_http_exception(e)
    return ConsumerLookupResponse(
        phone_number=number.strip(),
        consumer_label=outcome.value,
        found=outcome.value is not None,
        superseded=outcome.superseded,
    )


@router.get("/lines/{line_id}/path")
async def get_line_path(line_id: UUID, use_case: ManagePhoneLinesUseCase = Depends(get_manage_lines)):
    """The nodes and ports a line runs through, in order."""
    try:
        steps = await use_case.path(line_id)
    except TelrouteError as e:
        raise to_http_exception(e)
    return {"line_id": str(line_id), "path": [s.to_dict() for s in steps]}


@router.get("/lines/{line_id}/history")
async def get_line_history(
    line_id: UUID,
    use_case: ManagePhoneLinesUseCase = Depends(get_manage_lines),
):
    try:
        entries = await use_case.history(line_id)
    except TelrouteError as e:
        raise to_http_exception(e)
    return {"line_id": str(line_id), "entries": [e.to_dict() for e in entries]}


@router.delete("/lines/{line_id}", status_code=204)
async def delete_line(
    line_id: UUID,
    actor: Optional[str] = Query(None),
    use_case: ManagePhoneLinesUseCase = Depends(get_manage_lines),
):
    """Delete a line. Rejected with 409 while it still has hops."""
    try:
        await use_case.delete_line(line_id, actor=actor)
    except TelrouteError as e:
        raise to_http_exception(e)


# ========== Wire colors ==========


@router.get("/wire-colors", response_model=list[WireColorDTO])
async def list_wire_colors(use_case: WireColorSettingsUseCase = Depends(get_wire_colors)):
    try:
        return _wire_colors_response(await use_case.load())
    except TelrouteError as e:
        raise to_http_exception(e)


@router.post("/wire-colors", response_model=list[WireColorDTO], status_code=201)
async def add_wire_color(
    body: WireColorRequest,
    use_case: WireColorSettingsUseCase = Depends(get_wire_colors),
):
    try:
        return _wire_colors_response(await use_case.add(body.name, body.value))
    except TelrouteError as e:
        raise to_http_exception(e)


@router.delete("/wire-colors/{name}", response_model=list[WireColorDTO])
async def remove_wire_color(
    name: str,
    use_case: WireColorSettingsUseCase = Depends(get_wire_colors),
):
    try:
        return _wire_colors_response(await use_case.remove(name))
    except TelrouteError as e:
        raise to_http_exception(e)


# ========== Dashboard cards ==========


@router.get("/dashboard-cards", response_model=list[DashboardCardDTO])
async def list_dashboard_cards(use_case: DashboardCardsUseCase = Depends(get_dashboard_cards)):
    try:
        cards = await use_case.load()
    except TelrouteError as e:
        raise to_http_exception(e)
    return [
        DashboardCardDTO(id=c.id, name=c.name, tag_ids=c.tag_ids, tag_names=c.tag_names)
        for c in cards
    ]


@router.post("/dashboard-cards", response_model=DashboardCardDTO, status_code=201)
async def add_dashboard_card(
    body: DashboardCardRequest,
    use_case: DashboardCardsUseCase = Depends(get_dashboard_cards),
):
    try:
        card = await use_case.add(body.name, body.tag_ids, body.tag_names)
    except TelrouteError as e:
        raise to_http_exception(e)
    return DashboardCardDTO(id=card.id, name=card.name, tag_ids=card.tag_ids, tag_names=card.tag_names)


@router.delete("/dashboard-cards/{card_id}", status_code=204)
async def remove_dashboard_card(
    card_id: str,
    use_case: DashboardCardsUseCase = Depends(get_dashboard_cards),
):
    try:
        await use_case.remove(card_id)
    except TelrouteError as e:
        raise to_http_exception(e)
