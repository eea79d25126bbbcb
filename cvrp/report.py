import json
import logging
import math
from typing import Any, Dict, Optional

from reportlab.lib import colors
from reportlab.lib.pagesizes import letter
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.platypus import Paragraph, Preformatted, SimpleDocTemplate, Spacer, Table, TableStyle

from cvrp.config import REPORT_PATH
from cvrp.models import Problem
from cvrp.solution import Solution

logger = logging.getLogger(__name__)


def _number(value: float) -> Optional[float]:
    # JSON has no infinity
    if value is None or math.isinf(value) or math.isnan(value):
        return None
    return round(value, 4)


def build_solution_output(problem: Problem, solution: Solution,
                          status: Optional[str] = None,
                          reason: Optional[str] = None,
                          generations: Optional[int] = None,
                          elapsed: Optional[float] = None) -> Dict[str, Any]:
    locations = problem.locations
    all_routes_data = []

    for route in solution.routes:
        evaluation = route.evaluation
        all_routes_data.append({
            "vehicle_id": route.vehicle.id,
            "stops": [locations[i].id for i in route.sequence],
            "customers": [locations[i].id for i in route.customers],
            "distance": _number(evaluation.distance),
            "travel_time": _number(evaluation.travel_time),
            "cost": _number(evaluation.total_cost),
            "demand": _number(evaluation.total_demand),
            "capacity": _number(route.vehicle.capacity),
            "fuel_levels": [_number(level) for level in evaluation.fuel_levels],
            "time_window_violations": evaluation.time_window_violations,
            "capacity_violations": evaluation.capacity_violations,
            "fuel_violations": evaluation.fuel_violations,
            "stations_used": [locations[i].id for i in evaluation.stations_used],
        })

    coverage = solution.coverage(problem.customer_indices)

    return {
        "status": status,
        "termination_reason": reason,
        "generations": generations,
        "elapsed_seconds": _number(elapsed) if elapsed is not None else None,
        "total_cost": _number(solution.total_cost),
        "total_distance": _number(solution.total_distance),
        "number_of_vehicles_used": len(all_routes_data),
        "problem": problem.summary(),
        "coverage": {
            "complete": coverage.is_complete,
            "assigned": len(coverage.assigned),
            "unassigned_customer_ids": [locations[i].id for i in coverage.unassigned],
            "duplicated_customer_ids": [locations[i].id for i in coverage.duplicated],
        },
        "routes": all_routes_data,
    }


def generate_pdf_report(output: Dict[str, Any], file_name: str = REPORT_PATH) -> str:
    output_str = json.dumps(output, indent=4, ensure_ascii=False)

    doc = SimpleDocTemplate(file_name, pagesize=letter)
    styles = getSampleStyleSheet()
    Story = []

    styles.add(ParagraphStyle(name='CodeStyle', fontName='Courier', fontSize=8,
                              leading=10, leftIndent=10, rightIndent=10, textColor=colors.navy))
    styles.add(ParagraphStyle(name='TitleStyle', fontSize=24, alignment=1, spaceAfter=20))
    Story.append(Paragraph("CVRP Optimization Report (Hybrid GA + Tabu + 3-opt)", styles['TitleStyle']))

    Story.append(Paragraph("<b>Key Solution Metrics:</b>", styles['Heading2']))
    Story.append(Spacer(1, 12))

    coverage = output.get('coverage', {})
    problem = output.get('problem', {})
    table_data = [
        ['Metric', 'Value'],
        ['Status', output.get('status') or 'N/A'],
        ['Termination Reason', output.get('termination_reason') or 'N/A'],
        ['Total Cost', _format(output.get('total_cost'))],
        ['Total Distance', _format(output.get('total_distance'))],
        ['Vehicles Used', output.get('number_of_vehicles_used', 'N/A')],
        ['Fleet Size', problem.get('vehicles', 'N/A')],
        ['Customers', problem.get('customers', 'N/A')],
        ['Unassigned Customers', len(coverage.get('unassigned_customer_ids', []))],
        ['Generations', output.get('generations') if output.get('generations') is not None else 'N/A'],
    ]

    t = Table(table_data, colWidths=[200, 300])
    t.setStyle(_table_style())
    Story.append(t)
    Story.append(Spacer(1, 24))

    routes = output.get('routes', [])
    if routes:
        Story.append(Paragraph("<b>Routes:</b>", styles['Heading2']))
        Story.append(Spacer(1, 12))
        route_rows = [['Vehicle', 'Stops', 'Distance', 'Cost', 'Demand / Capacity', 'Violations (TW/Cap/Fuel)']]
        for route in routes:
            route_rows.append([
                route['vehicle_id'],
                Paragraph(" - ".join(str(s) for s in route['stops']), styles['Normal']),
                _format(route['distance']),
                _format(route['cost']),
                f"{route['demand']} / {route['capacity']}",
                f"{route['time_window_violations']}/{route['capacity_violations']}/{route['fuel_violations']}",
            ])
        rt = Table(route_rows, colWidths=[45, 170, 60, 70, 70, 85])
        rt.setStyle(_table_style())
        Story.append(rt)
        Story.append(Spacer(1, 24))

    Story.append(Paragraph("<b>Raw Solution Data (JSON):</b>", styles['Heading2']))
    Story.append(Spacer(1, 6))
    Story.append(Preformatted(output_str, styles['CodeStyle']))
    Story.append(Spacer(1, 24))

    try:
        doc.build(Story)
        logger.info(f"PDF '{file_name}' generated successfully")
    except Exception as e:
        logger.error(f"Error building the PDF: {e}")

    return output_str


def _format(value) -> str:
    if isinstance(value, (int, float)):
        return f"{value:.4f}"
    return 'N/A'


def _table_style() -> TableStyle:
    return TableStyle([
        ('BACKGROUND', (0, 0), (-1, 0), colors.HexColor('#DDDDDD')),
        ('GRID', (0, 0), (-1, -1), 0.5, colors.black),
        ('BOX', (0, 0), (-1, -1), 1, colors.black),
        ('ALIGN', (1, 1), (-1, -1), 'RIGHT'),
        ('ALIGN', (0, 0), (0, -1), 'LEFT'),
        ('VALIGN', (0, 0), (-1, -1), 'MIDDLE'),
        ('FONTNAME', (0, 0), (-1, 0), 'Helvetica-Bold'),
    ])
