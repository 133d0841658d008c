#!/usr/bin/env python3
"""
Script to register a FastPay account directly against the configured database
Usage: python create_user.py <name> <email> <password>
Example: python create_user.py "Alice Smith" alice@example.com s3cret
"""

import sys
from common.error_handling import FastPayError
from common.settings import get_settings
from ledger_service.context import build_context

def create_user(name: str, email: str, password: str) -> bool:
    """Register an account and print its payment id"""
    ctx = build_context(get_settings())
    try:
        payment_id = ctx.accounts.register(name, email, password)
        account = ctx.accounts.get_public_profile(payment_id)
    except FastPayError as e:
        print(f'❌ Error creating user: {e.message}')
        return False
    finally:
        ctx.dispose()

    print('✅ Successfully created user!')
    print('')
    print('📊 User Details:')
    print(f'   Name:    {account.name}')
    print(f'   Email:   {account.email}')
    print(f'   UPI ID:  {account.payment_id}')
    print(f'   Balance: {account.balance}')
    return True

if __name__ == '__main__':
    if len(sys.argv) != 4:
        print('Usage: python create_user.py <name> <email> <password>')
        print('Example: python create_user.py "Alice Smith" alice@example.com s3cret')
        sys.exit(1)

    sys.exit(0 if create_user(*sys.argv[1:4]) else 1)
