import argparse
import asyncio
import json
import sys


async def send(proc: asyncio.subprocess.Process, command: dict) -> dict:
    """
    Write one command line and read back the single response line.
    """
    proc.stdin.write((json.dumps(command) + "\n").encode())
    await proc.stdin.drain()
    line = await proc.stdout.readline()
    if not line:
        raise RuntimeError("Bridge closed its output")
    return json.loads(line)


async def forward_logs(stream: asyncio.StreamReader, debug: bool):
    """Bridge logs are JSON lines on stderr"""
    while True:
        line = await stream.readline()
        if not line:
            break
        try:
            record = json.loads(line)
        except json.JSONDecodeError:
            print(line.decode().rstrip(), file=sys.stderr)
            continue
        if debug or record.get("level") != "DEBUG":
            print(f"[bridge] {record.get('level')}: {record.get('message')}", file=sys.stderr)


async def main(config_path: str, token_id: str, price: str, size: str, debug: bool = False):
    """
    Drive the bridge the way a parent application does: probe, check balance,
    place a limit order, cancel it and exit.
    """
    #########################
    ### Start the Bridge ###
    #########################
    bridge_args = ["serve", "--log-format", "json"]
    if config_path:
        bridge_args += ["--config", config_path]
    if debug:
        bridge_args += ["--log-level", "DEBUG"]

    proc = await asyncio.create_subprocess_exec(
        sys.executable, "-m", "clob_bridge.cli", *bridge_args,
        stdin=asyncio.subprocess.PIPE,
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.PIPE,
    )
    logs = asyncio.create_task(forward_logs(proc.stderr, debug))

    try:
        ######################
        ### Find the Setup ###
        ######################
        probe = await send(proc, {"cmd": "probe"})
        if not probe["success"]:
            print(f"Probe failed: {probe['data']['recommendation']}")
            return
        working = probe["data"]["working_config"]
        signature_type = {"EOA": 0, "Proxy": 1, "GnosisSafe": 2}[working["signature_type"]]
        print(f"Working signature type: {working['signature_type']}")

        session = {"signature_type": signature_type, "funder_address": working["funder_address"]}
        balance = await send(proc, {"cmd": "balance", **session})
        print(f"Balance: {balance.get('data', {}).get('balance')}")

        ####################
        ### Trade a Bit ###
        ####################
        if token_id:
            order = await send(proc, {
                "cmd": "order", "token_id": token_id, "side": "buy",
                "amount": size, "price": price, **session,
            })
            print(f"Order: {json.dumps(order)}")
            order_id = (order.get("data") or {}).get("response", {}).get("orderID")
            if order.get("success") and order_id:
                cancel = await send(proc, {"cmd": "cancel", "order_id": order_id, **session})
                print(f"Cancel: {json.dumps(cancel)}")

        markets = await send(proc, {"cmd": "markets"})
        print(f"Markets: {markets.get('data', {}).get('count')}")
    finally:
        if proc.returncode is None:
            await send(proc, {"cmd": "exit"})
            proc.stdin.close()
            await proc.wait()
        await logs


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Example parent process for clob-bridge")
    parser.add_argument("--config", dest="config_path", help="Path to config file (YAML)")
    parser.add_argument("--token-id", help="Outcome token to place a test limit order on")
    parser.add_argument("--price", default="0.01", help="Limit price for the test order")
    parser.add_argument("--size", default="5", help="Size of the test order")
    parser.add_argument("--debug", action="store_true", help="Show bridge DEBUG logs")
    args = parser.parse_args()

    try:
        asyncio.run(main(args.config_path, args.token_id, args.price, args.size, args.debug))
    except KeyboardInterrupt:
        print("Stopped by user")
    except Exception as e:
        print(f"Error: {e}")
        sys.exit(1)
