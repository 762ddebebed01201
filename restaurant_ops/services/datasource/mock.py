"""
Synthetic Session Datasets

Deterministic data served when the backend is unreachable or mock mode
is forced. Every builder returns fresh model instances so one session's
mutations never leak into the next.

The rows are written in the backend's camelCase wire shape and validated
through the same models as live payloads, so they satisfy the same
invariants:
    - every delivery's deliveryPersonId exists in the person list
    - every delivery's orderId exists in the order list
    - the delivered assignment carries an actualDeliveryTime
    - the confirmed reservation sits at a table large enough for it

Author: Khalil Bannouri
Version: 1.0.0
"""

from restaurant_ops.models import (
    DeliveryAssignment,
    DeliveryPerson,
    DeliveryProgress,
    Order,
    Reservation,
    Table,
)


# =============================================================================
# DELIVERY
# =============================================================================

_DELIVERY_PERSONS = [
    {
        "id": "1",
        "name": "John Smith",
        "email": "john@example.com",
        "phone": "+1-555-0123",
        "status": "available",
        "vehicleType": "bicycle",
        "maxCapacity": 5,
        "rating": 4.8,
        "totalDeliveries": 156,
        "isActive": True,
        "currentLocation": {"latitude": 37.7749, "longitude": -122.4194},
        "createdAt": "2024-01-15T10:00:00Z",
        "updatedAt": "2024-01-15T10:00:00Z",
    },
    {
        "id": "2",
        "name": "Sarah Johnson",
        "email": "sarah@example.com",
        "phone": "+1-555-0124",
        "status": "busy",
        "vehicleType": "motorcycle",
        "maxCapacity": 8,
        "rating": 4.9,
        "totalDeliveries": 203,
        "isActive": True,
        "currentLocation": {"latitude": 37.7849, "longitude": -122.4094},
        "createdAt": "2024-01-15T10:00:00Z",
        "updatedAt": "2024-01-15T10:00:00Z",
    },
    {
        "id": "3",
        "name": "Mike Wilson",
        "email": "mike@example.com",
        "phone": "+1-555-0125",
        "status": "offline",
        "vehicleType": "car",
        "maxCapacity": 15,
        "rating": 4.7,
        "totalDeliveries": 89,
        "isActive": False,
        "createdAt": "2024-01-15T10:00:00Z",
        "updatedAt": "2024-01-15T10:00:00Z",
    },
]

_DELIVERIES = [
    {
        "id": "1",
        "orderId": "1",
        "deliveryPersonId": "1",
        "status": "in_transit",
        "priority": "normal",
        "assignedAt": "2024-01-15T10:30:00Z",
        "estimatedDeliveryTime": "2024-01-15T11:30:00Z",
        "notes": "Customer requested contactless delivery",
        "createdAt": "2024-01-15T10:00:00Z",
        "updatedAt": "2024-01-15T11:00:00Z",
    },
    {
        "id": "2",
        "orderId": "2",
        "deliveryPersonId": "2",
        "status": "picked_up",
        "priority": "high",
        "assignedAt": "2024-01-15T11:00:00Z",
        "estimatedDeliveryTime": "2024-01-15T12:00:00Z",
        "notes": "Fragile items - handle with care",
        "createdAt": "2024-01-15T10:30:00Z",
        "updatedAt": "2024-01-15T11:20:00Z",
    },
    {
        "id": "3",
        "orderId": "3",
        "deliveryPersonId": "1",
        "status": "delivered",
        "priority": "normal",
        "assignedAt": "2024-01-15T11:15:00Z",
        "estimatedDeliveryTime": "2024-01-15T12:15:00Z",
        "actualDeliveryTime": "2024-01-15T12:10:00Z",
        "createdAt": "2024-01-15T10:45:00Z",
        "updatedAt": "2024-01-15T12:10:00Z",
    },
]

_PROGRESS = [
    {
        "id": "1",
        "deliveryId": "1",
        "status": "preparing",
        "timestamp": "2024-01-15T10:00:00Z",
        "notes": "Order received and being prepared",
        "updatedBy": "kitchen",
    },
    {
        "id": "2",
        "deliveryId": "1",
        "status": "ready_for_pickup",
        "timestamp": "2024-01-15T10:25:00Z",
        "notes": "Order ready for pickup",
        "updatedBy": "kitchen",
    },
    {
        "id": "3",
        "deliveryId": "1",
        "status": "assigned",
        "timestamp": "2024-01-15T10:30:00Z",
        "notes": "Assigned to John Smith",
        "updatedBy": "admin",
    },
    {
        "id": "4",
        "deliveryId": "1",
        "status": "picked_up",
        "timestamp": "2024-01-15T10:45:00Z",
        "location": {"latitude": 37.7749, "longitude": -122.4194},
        "notes": "Order picked up from restaurant",
        "updatedBy": "delivery_person",
    },
    {
        "id": "5",
        "deliveryId": "1",
        "status": "in_transit",
        "timestamp": "2024-01-15T11:00:00Z",
        "location": {"latitude": 37.7799, "longitude": -122.4144},
        "notes": "On the way to customer",
        "updatedBy": "delivery_person",
    },
]


def mock_delivery_persons() -> list[DeliveryPerson]:
    return [DeliveryPerson.model_validate(row) for row in _DELIVERY_PERSONS]


def mock_deliveries() -> list[DeliveryAssignment]:
    return [DeliveryAssignment.model_validate(row) for row in _DELIVERIES]


def mock_delivery_progress() -> list[DeliveryProgress]:
    return [DeliveryProgress.model_validate(row) for row in _PROGRESS]


# =============================================================================
# ORDERS
# =============================================================================

_ORDERS = [
    {
        "id": 1,
        "customerId": 1,
        "customerName": "Alice Martin",
        "orderType": "DELIVERY",
        "status": "READY",
        "items": [
            {"menuItemId": 1, "menuItemName": "Margherita Pizza", "quantity": 2, "unitPrice": 12.99},
            {"menuItemId": 4, "menuItemName": "Caesar Salad", "quantity": 1, "unitPrice": 8.50},
        ],
        "tipAmount": 5.00,
        "specialInstructions": "Leave at the door",
        "createdAt": "2024-01-15T09:55:00Z",
    },
    {
        "id": 2,
        "customerId": 2,
        "customerName": "Bob Chen",
        "orderType": "DELIVERY",
        "status": "READY",
        "items": [
            {"menuItemId": 7, "menuItemName": "Chocolate Cake", "quantity": 1, "unitPrice": 24.00},
            {"menuItemId": 2, "menuItemName": "Spaghetti Carbonara", "quantity": 2, "unitPrice": 14.50},
        ],
        "tipAmount": 0.0,
        "createdAt": "2024-01-15T10:25:00Z",
    },
    {
        "id": 3,
        "customerId": 1,
        "customerName": "Alice Martin",
        "orderType": "DELIVERY",
        "status": "COMPLETED",
        "items": [
            {"menuItemId": 3, "menuItemName": "Grilled Salmon", "quantity": 1, "unitPrice": 22.00},
        ],
        "tipAmount": 3.00,
        "createdAt": "2024-01-15T10:40:00Z",
        "completedAt": "2024-01-15T12:10:00Z",
    },
    {
        "id": 4,
        "customerId": 3,
        "customerName": "Carol Davis",
        "tableId": 3,
        "orderType": "DINE_IN",
        "status": "PENDING",
        "items": [
            {"menuItemId": 1, "menuItemName": "Margherita Pizza", "quantity": 1, "unitPrice": 12.99},
            {"menuItemId": 5, "menuItemName": "Lemonade", "quantity": 3, "unitPrice": 3.50},
        ],
        "tipAmount": 0.0,
        "createdAt": "2024-01-15T12:30:00Z",
    },
    {
        "id": 5,
        "customerId": 2,
        "customerName": "Bob Chen",
        "orderType": "TAKEOUT",
        "status": "CONFIRMED",
        "items": [
            {"menuItemId": 6, "menuItemName": "Tiramisu", "quantity": 2, "unitPrice": 7.25},
        ],
        "tipAmount": 1.50,
        "createdAt": "2024-01-15T12:45:00Z",
    },
]


def mock_orders() -> list[Order]:
    return [Order.model_validate(row) for row in _ORDERS]


# =============================================================================
# RESERVATIONS
# =============================================================================

_TABLES = [
    {"id": 1, "number": "A1", "capacity": 4, "location": "Window side", "isAvailable": True},
    {"id": 2, "number": "A2", "capacity": 2, "location": "Window side", "isAvailable": True},
    {"id": 3, "number": "B1", "capacity": 6, "location": "Center", "isAvailable": True},
    {"id": 4, "number": "B2", "capacity": 8, "location": "Center", "isAvailable": False},
    {"id": 5, "number": "C1", "capacity": 2, "location": "Outdoor", "isAvailable": True},
]

_RESERVATIONS = [
    {
        "id": 1,
        "customerId": 1,
        "customerName": "John Doe",
        "customerEmail": "john@example.com",
        "customerPhone": "+1234567890",
        "reservationDateTime": "2024-01-28T19:00:00Z",
        "partySize": 4,
        "tableId": 1,
        "status": "CONFIRMED",
        "specialRequests": "Window table preferred",
        "createdAt": "2024-01-27T10:00:00Z",
        "confirmedAt": "2024-01-27T10:30:00Z",
        "confirmedByUserId": 1,
    },
    {
        "id": 2,
        "customerId": 2,
        "customerName": "Emma Wright",
        "customerEmail": "emma@example.com",
        "customerPhone": "+1234567891",
        "reservationDateTime": "2024-01-29T18:30:00Z",
        "partySize": 2,
        "status": "PENDING",
        "specialRequests": "Anniversary dinner",
        "createdAt": "2024-01-27T14:00:00Z",
    },
    {
        "id": 3,
        "customerId": 3,
        "customerName": "Liam Garcia",
        "customerEmail": "liam@example.com",
        "reservationDateTime": "2024-01-30T20:00:00Z",
        "partySize": 6,
        "status": "PENDING",
        "createdAt": "2024-01-28T09:15:00Z",
    },
]


def mock_tables() -> list[Table]:
    return [Table.model_validate(row) for row in _TABLES]


def mock_reservations() -> list[Reservation]:
    return [Reservation.model_validate(row) for row in _RESERVATIONS]
