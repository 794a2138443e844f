"""Schema v1 - Initial database schema.

This version includes tables for:
- Services (listings offered by sellers)
- Orders (purchases of a service by a buyer)
"""

schema = {
    'version': 1,
    'tables': [
        {
            'name': 'services',
            'columns': [
                {'name': 'id', 'type': 'TEXT', 'primary_key': True, 'default': 'gen_random_uuid()::TEXT'},
                {'name': 'fid', 'type': 'INT8', 'nullable': False},
                {'name': 'title', 'type': 'TEXT', 'nullable': False},
                {'name': 'description', 'type': 'TEXT', 'nullable': False},
                {'name': 'price', 'type': 'DECIMAL', 'nullable': False},
                {'name': 'currency', 'type': 'TEXT', 'nullable': False, 'default': "'USDC'"},
                {'name': 'delivery_days', 'type': 'INT8', 'nullable': False},
                {'name': 'category', 'type': 'TEXT', 'nullable': False},
                {'name': 'tags', 'type': 'TEXT[]', 'nullable': False, 'default': "'{}'"},
                {'name': 'status', 'type': 'TEXT', 'nullable': False, 'default': "'active'"},
                {'name': 'user_name', 'type': 'TEXT'},
                {'name': 'user_pfp', 'type': 'TEXT'},
                {'name': 'wallet_address', 'type': 'TEXT'},
                {'name': 'created_at', 'type': 'TIMESTAMPTZ', 'nullable': False, 'default': 'now()'},
                {'name': 'updated_at', 'type': 'TIMESTAMPTZ', 'nullable': False, 'default': 'now()'}
            ],
            'checks': ['price > 0', 'delivery_days >= 1'],
            'indexes': [
                {'name': 'idx_services_fid', 'columns': ['fid']},
                {'name': 'idx_services_status', 'columns': ['status', 'created_at']}
            ]
        },
        {
            'name': 'orders',
            'columns': [
                {'name': 'id', 'type': 'TEXT', 'primary_key': True, 'default': 'gen_random_uuid()::TEXT'},
                {'name': 'buyer_fid', 'type': 'INT8', 'nullable': False},
                {'name': 'seller_fid', 'type': 'INT8', 'nullable': False},
                {'name': 'service_id', 'type': 'TEXT', 'nullable': False},
                {'name': 'amount', 'type': 'DECIMAL', 'nullable': False},
                {'name': 'currency', 'type': 'TEXT', 'nullable': False},
                {'name': 'payment_tx_hash', 'type': 'TEXT'},
                {'name': 'status', 'type': 'TEXT', 'nullable': False, 'default': "'pending'"},
                {'name': 'buyer_notes', 'type': 'TEXT'},
                {'name': 'seller_notes', 'type': 'TEXT'},
                {'name': 'completed_at', 'type': 'TIMESTAMPTZ'},
                {'name': 'cancelled_at', 'type': 'TIMESTAMPTZ'},
                {'name': 'created_at', 'type': 'TIMESTAMPTZ', 'nullable': False, 'default': 'now()'},
                {'name': 'updated_at', 'type': 'TIMESTAMPTZ', 'nullable': False, 'default': 'now()'}
            ],
            'checks': ['buyer_fid <> seller_fid'],
            'foreign_keys': [
                {'columns': ['service_id'], 'references': 'services(id)'}
            ],
            'indexes': [
                {'name': 'idx_orders_buyer', 'columns': ['buyer_fid', 'created_at']},
                {'name': 'idx_orders_seller', 'columns': ['seller_fid', 'created_at']},
                {'name': 'idx_orders_service', 'columns': ['service_id']}
            ]
        }
    ]
}
