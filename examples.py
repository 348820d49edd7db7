#!/usr/bin/env python3
"""
Example usage script for the BOM engine

This script demonstrates how to use the engine with custom data.
You can modify the component and item lists to match your own product structure.
"""

from bom_engine import create_engine
from bom_errors import CycleDetected
from bom_explosion import BOMExplosion, create_sample_bom_data
from bom_quantity import format_quantity


def example_with_custom_data():
    """Example with simple custom BOM data"""
    print("=" * 80)
    print("EXAMPLE 1: Simple Custom BOM")
    print("=" * 80)

    engine = create_engine()
    engine.load(
        components=[
            {"id": "BIKE-001", "name": "Bicycle", "direct_cost": "25"},
            {"id": "FRAME-001", "name": "Frame", "direct_cost": "15"},
            {"id": "WHEEL-001", "name": "Wheel", "direct_cost": "4"},
            {"id": "SEAT-001", "name": "Seat", "direct_cost": "2"},
            # Raw materials
            {"id": "STEEL-TUBE", "direct_cost": "7.80", "uom": "M"},
            {"id": "WELD-JOINT", "direct_cost": "1.10"},
            {"id": "PAINT-BLACK", "direct_cost": "9.00", "uom": "L"},
            {"id": "RIM-001", "direct_cost": "12.00"},
            {"id": "TIRE-001", "direct_cost": "18.50"},
            {"id": "SPOKE-001", "direct_cost": "0.15"},
            {"id": "FOAM-PAD", "direct_cost": "3.00"},
            {"id": "LEATHER-COVER", "direct_cost": "11.00"},
            {"id": "SEAT-POST", "direct_cost": "6.25"},
        ],
        items=[
            {"parent_id": "BIKE-001", "child_id": "FRAME-001", "quantity": "1"},
            {"parent_id": "BIKE-001", "child_id": "WHEEL-001", "quantity": "2"},
            {"parent_id": "BIKE-001", "child_id": "SEAT-001", "quantity": "1"},
            {"parent_id": "FRAME-001", "child_id": "STEEL-TUBE", "quantity": "3"},
            {"parent_id": "FRAME-001", "child_id": "WELD-JOINT", "quantity": "6"},
            {"parent_id": "FRAME-001", "child_id": "PAINT-BLACK", "quantity": "0.5"},
            {"parent_id": "WHEEL-001", "child_id": "RIM-001", "quantity": "1"},
            {"parent_id": "WHEEL-001", "child_id": "TIRE-001", "quantity": "1"},
            {"parent_id": "WHEEL-001", "child_id": "SPOKE-001", "quantity": "36"},
            {"parent_id": "SEAT-001", "child_id": "FOAM-PAD", "quantity": "1"},
            {"parent_id": "SEAT-001", "child_id": "LEATHER-COVER", "quantity": "1"},
            {"parent_id": "SEAT-001", "child_id": "SEAT-POST", "quantity": "1"},
        ],
    )

    print(engine.topology("BIKE-001", 1))

    print("\nRAW MATERIALS NEEDED FOR 1 BIKE:")
    print("-" * 40)
    for sku, qty in sorted(engine.raw_materials("BIKE-001").items()):
        print(f"{sku}: {format_quantity(qty)}")

    print(f"\nTOTAL COST FOR 10 BIKES: {engine.total_cost('BIKE-001', '10')}")
    print(f"SPOKE-001 IS USED IN: {', '.join(engine.where_used('SPOKE-001'))}")
    print()


def example_with_sample_data():
    """Example using the built-in sample data"""
    print("=" * 80)
    print("EXAMPLE 2: Built-in Sample Data (5 units of FG002)")
    print("=" * 80)

    bom_tool = BOMExplosion(create_sample_bom_data())
    print(bom_tool.display_topology("FG002", 5))

    print("\nFULL EXPLOSION (all levels, consolidated):")
    print("-" * 40)
    for sku, qty in bom_tool.explode("FG002", 5).quantities().items():
        print(f"{sku}: {format_quantity(qty)}")
    print()


def example_circular_reference():
    """Example showing circular reference detection"""
    print("=" * 80)
    print("EXAMPLE 3: Circular Reference Detection")
    print("=" * 80)

    engine = create_engine()
    for sku in ("A", "B", "C"):
        engine.add_component({"id": sku, "direct_cost": "1"})
    engine.add_item("A", "B", "1")
    engine.add_item("B", "C", "1")
    engine.add_item("C", "A", "1")  # Circular reference back to A

    try:
        engine.explode("A")
    except CycleDetected as e:
        print(f"Explosion refused: {e.message}")
    print()


if __name__ == "__main__":
    example_with_custom_data()
    example_with_sample_data()
    example_circular_reference()
