"""
Random-action reinforcement trainer.

Drives a session running in reinforcement mode through the action/telemetry
handshake with uniformly random actions. Useful as a smoke test of the
channel and as a baseline return for real trainers.

Workflow:
    1. Start the session: python drive_session.py --mode reinforcement
    2. Run this script:   python tools/random_trainer.py --episodes 5

Usage:
    python tools/random_trainer.py [--episodes 5] [--max-steps 2000] [--seed 0]
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

import numpy as np

sys.path.insert(0, str(Path(__file__).parent.parent))

from bridge.learning_channel import AgentAction
from bridge.trainer_client import FileBridgeClient

logger = logging.getLogger(__name__)


def run_random_trainer(client: FileBridgeClient, episodes: int = 5, max_steps: int = 2000,
                       seed: Optional[int] = None, timeout: float = 5.0) -> List[float]:
    """
    Play episodes with random actions.

    Args:
        client: Trainer-side channel client
        episodes: Number of episodes to play
        max_steps: Step limit per episode
        seed: RNG seed for the action sequence
        timeout: Seconds to wait for each telemetry record

    Returns:
        Total reward of each finished episode
    """
    rng = np.random.default_rng(seed)
    actions = [action.value for action in AgentAction]
    returns = []

    for episode in range(episodes):
        total_reward = 0.0
        steps = 0
        done = False
        while not done and steps < max_steps:
            client.write_action(int(rng.choice(actions)))
            record = client.wait_for_telemetry(timeout=timeout)
            if record is None:
                logger.warning(f"No telemetry within {timeout:.1f}s; is the session running?")
                return returns
            total_reward += record.reward
            done = record.done
            steps += 1
        returns.append(total_reward)
        logger.info(f"Episode {episode + 1}/{episodes}: steps={steps} return={total_reward:.3f} done={done}")

    return returns


def main():
    parser = argparse.ArgumentParser(description="Random-action reinforcement trainer")
    parser.add_argument("--dir", type=str, default="/tmp", help="Channel directory")
    parser.add_argument("--episodes", type=int, default=5, help="Episodes to play")
    parser.add_argument("--max-steps", type=int, default=2000, help="Step limit per episode")
    parser.add_argument("--seed", type=int, default=None, help="RNG seed")
    parser.add_argument("--timeout", type=float, default=5.0, help="Telemetry wait (seconds)")
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(name)s - %(levelname)s - %(message)s')

    client = FileBridgeClient(directory=args.dir)
    if not client.health_check():
        print(f"Channel directory not usable: {args.dir}")
        sys.exit(1)

    returns = run_random_trainer(client, episodes=args.episodes, max_steps=args.max_steps,
                                 seed=args.seed, timeout=args.timeout)
    if returns:
        print(f"Episodes: {len(returns)}  mean return: {np.mean(returns):.3f}  best: {np.max(returns):.3f}")
    else:
        print("No episode finished")


if __name__ == "__main__":
    main()
