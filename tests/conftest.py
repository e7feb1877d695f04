import pytest

from fuzzscaffold.analysis import parse_to_idl_program, Idl


PROGRAM_ID = "Fg6PaFpoGXkYsidMpWTK6W2BeZ7FEfcYkg476zPFsLnS"

# Expanded-like source: the #[program] attribute is still present so the same
# text can serve as both the entry and the expanded source.
CROWDFUND_SRC = '''
use anchor_lang::prelude::*;

declare_id!("Fg6PaFpoGXkYsidMpWTK6W2BeZ7FEfcYkg476zPFsLnS");

#[program]
pub mod crowdfund {
    use super::*;

    pub fn initialize(ctx: Context<Initialize>) -> Result<()> {
        Ok(())
    }

    pub fn register(ctx: Context<CommonCtx>) -> Result<()> {
        Ok(())
    }

    pub fn invest(ctx: Context<CommonCtx>, amount: u64) -> Result<()> {
        Ok(())
    }

    pub fn transfer(
        ctx: Context<Transfer>,
        recipient: Pubkey,
        mut memo: Option<Pubkey>,
    ) -> Result<()> {
        Ok(())
    }
}

#[derive(Accounts)]
pub struct Initialize<'info> {
    #[account(mut)]
    pub author: Signer<'info>,
    #[account(
        init,
        payer = author,
        space = 8 + 32,
        seeds = [b"state", author.key().as_ref()],
        bump
    )]
    pub state: Account<'info, State>,
}

#[derive(Accounts)]
pub struct CommonCtx<'info> {
    #[account(mut)]
    pub investor: Signer<'info>,
    #[account(mut, constraint = project.amount > 0)]
    pub project: Account<'info, Project>,
    pub clock: Sysvar<'info, Clock>,
    /// CHECK: fees are only collected
    pub fee_collector: AccountInfo<'info>,
    pub system_program: Program<'info, System>,
}

#[derive(Accounts)]
pub struct Transfer<'info> {
    pub sender: Signer<'info>,
    pub vault: Option<Box<Account<'info, Vault>>>,
    /// CHECK: not read
    pub authority: UncheckedAccount<'info>,
    pub referrer: Option<AccountInfo<'info>>,
    pub nested: Nested<'info>,
    #[account(mut, close = sender)]
    pub ticket: AccountLoader<'info, Ticket>,
}

#[account]
pub struct State {
    pub author: Pubkey,
}
'''

# #[program] module lives in lib.rs; the expanded source only has structs,
# one of them nested in a module.
ENTRY_SRC = '''
use anchor_lang::prelude::*;

declare_id!("11111111111111111111111111111111");

#[program]
pub mod vault_program {
    use super::*;

    pub fn deposit(ctx: Context<'_, '_, '_, 'info, Deposit<'info>>, amount: u64) -> Result<()> {
        Ok(())
    }

    pub fn noop(_ctx: Context<Empty>) -> Result<()> {
        Ok(())
    }
}
'''

EXPANDED_SRC = '''
pub mod instructions {
    pub mod deposit {
        pub struct Deposit<'info> {
            pub owner: Signer<'info>,
            pub vault: InterfaceAccount<'info, TokenAccount>,
        }
    }
}

pub struct Empty {}

pub struct Deposit<'info> {
    pub wrong: Signer<'info>,
}
'''


@pytest.fixture
def crowdfund_src():
    return CROWDFUND_SRC


@pytest.fixture
def crowdfund_idl():
    return Idl(programs=[parse_to_idl_program(CROWDFUND_SRC)])


@pytest.fixture
def vault_idl():
    return Idl(programs=[parse_to_idl_program(EXPANDED_SRC, entry_code=ENTRY_SRC)])


@pytest.fixture
def crowdfund_files(tmp_path):
    path = tmp_path / "crowdfund.rs"
    path.write_text(CROWDFUND_SRC)
    return path
