"""
                        Services Module

Business logic, kept free of HTTP concerns. External integrations follow
the hybrid pattern: a Mock implementation for development and a Real one
for staging/production, chosen by ENV_MODE.

Services:
    - pricing: order pricing and option resolution (pure)
    - order_messages: WhatsApp message and wa.me link rendering
    - subscriptions: subscription gate, plans, payment status application
    - repositories: catalog snapshot loading and order persistence
    - orders: order placement and status transitions
    - payment: Stripe checkout links and webhooks
    - notifications: order alerts via Twilio WhatsApp and SendGrid email
"""
