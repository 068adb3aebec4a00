"""
Fatigue model. Agents slow down after long busy stretches and recover while idle.
"""

import logging
from typing import Iterable

from qcommerce.sim.domain.constraints import FatiguePolicy
from qcommerce.sim.domain.models import Agent, AgentStatus

logger = logging.getLogger(__name__)


def update_agent_fatigue(agent: Agent, policy: FatiguePolicy) -> None:
    if agent.status == AgentStatus.AVAILABLE:
        if agent.idle_streak_min >= policy.recovery_idle_minutes and agent.fatigue_factor < policy.ceiling:
            agent.fatigue_factor = min(policy.ceiling, agent.fatigue_factor + policy.recovery_increment)
            logger.debug("Agent %s recovered to %.2f", agent.agent_id, agent.fatigue_factor)
            if agent.fatigue_factor >= policy.ceiling:
                agent.time_continuously_active = 0.0
                agent.consecutive_deliveries_since_rest = 0
        return

    agent.idle_streak_min = 0.0
    tired = (
        agent.consecutive_deliveries_since_rest >= policy.deliveries_threshold
        or agent.time_continuously_active >= policy.active_minutes_threshold
    )
    if tired and agent.fatigue_factor > policy.floor:
        agent.fatigue_factor = max(policy.floor, agent.fatigue_factor - policy.decrement)
        agent.consecutive_deliveries_since_rest = 0
        agent.time_continuously_active = 0.0
        logger.debug("Agent %s fatigued to %.2f", agent.agent_id, agent.fatigue_factor)


def update_fatigue(agents: Iterable[Agent], policy: FatiguePolicy) -> None:
    for agent in agents:
        update_agent_fatigue(agent, policy)
